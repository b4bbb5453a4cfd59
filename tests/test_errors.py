from __future__ import annotations

import asyncio

import httpx
import pytest

from coursehub_client.api.errors import (
    DEFAULT_MESSAGE,
    NETWORK_MESSAGE,
    TIMEOUT_MESSAGE,
    ApiError,
    ErrorKind,
    extract_message,
    kind_for_status,
    normalize,
)

_REQ = httpx.Request("GET", "http://localhost/api/x/")


def _resp(status: int, payload=None, *, text: str | None = None) -> httpx.Response:
    if text is not None:
        return httpx.Response(status, text=text, request=_REQ)
    return httpx.Response(status, json=payload, request=_REQ)


def test_network_error_has_status_zero() -> None:
    err = normalize(httpx.ConnectError("dns failure", request=_REQ))
    assert err.status == 0
    assert err.message == NETWORK_MESSAGE
    assert err.kind is ErrorKind.NETWORK


def test_timeout_is_tagged_distinctly() -> None:
    err = normalize(httpx.ReadTimeout("slow", request=_REQ))
    assert err.status == 0
    assert err.message == TIMEOUT_MESSAGE
    assert err.kind is ErrorKind.TIMEOUT
    assert normalize(asyncio.TimeoutError()).kind is ErrorKind.TIMEOUT


def test_message_priority_detail_then_message_then_first_field() -> None:
    assert normalize(_resp(400, {"message": "m", "detail": "d"})).message == "d"
    assert normalize(_resp(400, {"message": "m", "email": ["bad"]})).message == "m"
    assert normalize(_resp(400, {"email": ["Enter a valid email."], "name": "x"})).message == (
        "Enter a valid email."
    )
    assert normalize(_resp(400, {"count": 3, "title": "Too short"})).message == "Too short"


def test_blank_strings_are_skipped() -> None:
    assert extract_message({"detail": "   ", "message": "", "field": ["", "x"], "other": "y"}) == "y"


@pytest.mark.parametrize(
    "status,expected",
    [
        (401, "Unauthorized. Please login again."),
        (403, "You don't have permission to perform this action."),
        (404, "Requested resource was not found."),
        (500, DEFAULT_MESSAGE),
        (418, DEFAULT_MESSAGE),
    ],
)
def test_status_defaults_when_no_message(status: int, expected: str) -> None:
    err = normalize(_resp(status, text="<html>oops</html>"))
    assert err.status == status
    assert err.message == expected
    assert err.raw == "<html>oops</html>"


def test_status_error_and_response_are_equivalent() -> None:
    resp = _resp(404, {"detail": "No Course matches the given query."})
    via_exc = normalize(httpx.HTTPStatusError("404", request=_REQ, response=resp))
    via_resp = normalize(resp)
    assert via_exc.to_dict() == via_resp.to_dict()
    assert via_exc.kind is ErrorKind.NOT_FOUND


def test_kinds_by_status() -> None:
    assert kind_for_status(401) is ErrorKind.AUTH_FAILED
    assert kind_for_status(401, retried=False) is ErrorKind.AUTH_EXPIRED
    assert kind_for_status(403) is ErrorKind.FORBIDDEN
    assert kind_for_status(422, {"email": ["required"]}) is ErrorKind.VALIDATION
    assert kind_for_status(400, {"detail": "bad"}) is ErrorKind.CLIENT
    assert kind_for_status(503) is ErrorKind.SERVER


@pytest.mark.parametrize(
    "payload,kind",
    [
        ({"error": "Bad request"}, ErrorKind.CLIENT),
        ({"code": 42, "hint": "retry"}, ErrorKind.CLIENT),
        ({"email": []}, ErrorKind.CLIENT),
        ({"email": [{"code": "invalid"}]}, ErrorKind.CLIENT),
        ({"non_field_errors": ["Already enrolled."]}, ErrorKind.VALIDATION),
        ({"detail": "bad", "title": ["Too short."]}, ErrorKind.VALIDATION),
    ],
)
def test_validation_needs_field_error_lists(payload, kind) -> None:
    assert kind_for_status(400, payload) is kind
    assert normalize(_resp(400, payload)).kind is kind


def test_api_error_passes_through_unchanged() -> None:
    err = ApiError(409, "conflict")
    assert normalize(err) is err


def test_plain_exception_uses_its_text() -> None:
    err = normalize(ValueError("boom"))
    assert err.status == 0
    assert err.message == "boom"
    assert normalize(ValueError()).message == DEFAULT_MESSAGE


class _Hostile:
    def __str__(self) -> str:
        raise RuntimeError("no str for you")


class _HostileError(Exception):
    def __str__(self) -> str:
        raise RuntimeError("no str for you")


@pytest.mark.parametrize(
    "value",
    [
        None,
        42,
        "just a string",
        {"detail": None},
        [1, 2, 3],
        _Hostile(),
        _HostileError(),
        _resp(500, [1, "two"]),
        _resp(400, {"": [], "nested": {"x": ["y"]}}),
        httpx.Response(502, headers={"content-type": "application/json"}, content=b"{not json", request=_REQ),
    ],
)
def test_normalize_is_total(value: object) -> None:
    err = normalize(value)
    assert isinstance(err, ApiError)
    assert isinstance(err.status, int)
    assert err.message.strip()


def test_api_error_is_read_only() -> None:
    err = ApiError(500, "x")
    with pytest.raises(AttributeError):
        err.status = 200  # type: ignore[misc]


def test_auth_failed_takes_refresh_body_message() -> None:
    cause = normalize(_resp(500, {"detail": "Refresh token blacklisted"}))
    err = ApiError.auth_failed(cause)
    assert err.status == 401
    assert err.kind is ErrorKind.AUTH_FAILED
    assert err.message == "Refresh token blacklisted"

    bare = ApiError.auth_failed(normalize(_resp(500, text="")))
    assert bare.message == "Unauthorized. Please login again."
