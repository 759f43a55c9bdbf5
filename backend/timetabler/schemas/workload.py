from pydantic import BaseModel, Field


class WorkloadFailure(BaseModel):
    teacher_id: str
    error: str


class WorkloadRecomputeReport(BaseModel):
    workloads: dict[str, int] = Field(default_factory=dict)
    failures: list[WorkloadFailure] = Field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures
