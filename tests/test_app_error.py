from practice_api.services.errors import AppError, NotFoundError


def test_client_errors_are_failures() -> None:
    error = AppError("Bad input", 400)

    assert error.message == "Bad input"
    assert error.status_code == 400
    assert error.status == "fail"
    assert error.is_operational is True
    assert str(error) == "Bad input"


def test_server_errors_are_errors() -> None:
    assert AppError("Down", 500).status == "error"
    assert AppError("Unavailable", 503).status == "error"


def test_not_found_names_the_resource() -> None:
    error = NotFoundError("Book", "abc")

    assert error.status_code == 404
    assert error.status == "fail"
    assert error.message == "No book found with id 'abc'"
