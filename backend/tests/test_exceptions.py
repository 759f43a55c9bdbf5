import pytest

from timetabler.core.exceptions import (
    AppError,
    CollaboratorError,
    DuplicateResourceError,
    GenerationTimeoutError,
    InfeasibleScheduleError,
    InternalConsistencyError,
    ResourceNotFoundError,
    SchedulerError,
    TimetableRejectedError,
)


def test_scheduler_error_structure():
    err = SchedulerError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (InfeasibleScheduleError("no fit"), 422),
        (GenerationTimeoutError("too slow"), 422),
        (ResourceNotFoundError("Subject", "s1"), 404),
        (DuplicateResourceError("taken"), 409),
        (CollaboratorError("db down"), 503),
        (InternalConsistencyError("bad count"), 500),
    ],
)
def test_status_codes(error, status_code):
    assert error.status_code == status_code


def test_timeout_is_an_infeasibility():
    assert issubclass(GenerationTimeoutError, InfeasibleScheduleError)
    assert issubclass(InfeasibleScheduleError, SchedulerError)


def test_rejection_carries_errors_and_warnings():
    err = TimetableRejectedError("rejected", errors=[{"kind": "double_booking"}], warnings=[])
    assert err.status_code == 400
    assert err.details == {"errors": [{"kind": "double_booking"}], "warnings": []}


def test_store_failure_becomes_service_unavailable(client, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from timetabler.services.store import TimetableStore

    def broken(self, exclude_id=None):
        raise self._fail("load timetables", OperationalError("SELECT", {}, Exception("disk I/O error")))

    monkeypatch.setattr(TimetableStore, "list_timetables", broken)

    response = client.get("/api/timetables/")

    assert response.status_code == 503
    assert response.json()["message"] == "Could not load timetables"
