import pytest

from cronhooks.services.auth import extract_bearer_token, verify_api_token


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc", "abc"),
        ("bearer   abc  ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    assert extract_bearer_token(header) == expected


def test_verify_api_token():
    assert verify_api_token("Bearer abc", "abc") is True
    assert verify_api_token("Bearer abd", "abc") is False
    assert verify_api_token(None, "abc") is False
