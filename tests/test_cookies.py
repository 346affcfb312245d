from datetime import datetime, timedelta, timezone

import pytest
from requests.structures import CaseInsensitiveDict

from apijam.networking.cookies import (
    INVALID_EXPIRES,
    Cookie,
    parse_cookie_date,
    parse_set_cookies,
    split_set_cookie_header,
)

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_missing_header_yields_no_cookies():
    assert parse_set_cookies({"content-type": "text/plain"}) == []
    assert parse_set_cookies({"set-cookie": ""}) == []


def test_two_cookies_with_attributes():
    headers = {"set-cookie": "a=1; Path=/; HttpOnly, b=2; Max-Age=60"}

    cookies = parse_set_cookies(headers, now=NOW)

    assert cookies == [
        Cookie(name="a", value="1", path="/", http_only=True),
        Cookie(name="b", value="2", expires=NOW + timedelta(seconds=60)),
    ]


def test_max_age_relative_to_current_time_by_default():
    before = datetime.now(timezone.utc)
    (cookie,) = parse_set_cookies({"Set-Cookie": "b=2; Max-Age=60"})
    after = datetime.now(timezone.utc)

    assert before + timedelta(seconds=60) <= cookie.expires <= after + timedelta(seconds=60)


def test_comma_inside_expires_does_not_split():
    headers = {"set-cookie": "id=a3fWa; Expires=Wed, 09 Jun 2021 10:18:14 GMT; Secure"}

    cookies = parse_set_cookies(headers)

    assert len(cookies) == 1
    assert cookies[0].expires == datetime(2021, 6, 9, 10, 18, 14, tzinfo=timezone.utc)
    assert cookies[0].secure is True


def test_cookie_after_expires_date_is_still_split():
    headers = {
        "set-cookie": (
            "a=1; expires=Wednesday, 09-Jun-21 10:18:14 GMT; path=/, "
            "b=2; Expires=Thu, 10 Jun 2021 10:18:14 GMT, c=3"
        )
    }

    cookies = parse_set_cookies(headers)

    assert [cookie.name for cookie in cookies] == ["a", "b", "c"]
    assert cookies[0].path == "/"


def test_max_age_wins_over_expires_in_either_order():
    expires = "Expires=Wed, 09 Jun 2021 10:18:14 GMT"
    headers = {"set-cookie": f"a=1; {expires}; Max-Age=10, b=2; Max-Age=10; {expires}"}

    first, second = parse_set_cookies(headers, now=NOW)

    assert first.expires == NOW + timedelta(seconds=10)
    assert second.expires == NOW + timedelta(seconds=10)


def test_invalid_expires_is_recorded_not_rejected():
    (cookie,) = parse_set_cookies({"set-cookie": "a=1; Expires=not a date; Path=/x"})

    assert cookie.expires == INVALID_EXPIRES
    assert cookie.has_valid_expiry is False
    assert cookie.path == "/x"


def test_invalid_max_age_does_not_abort_parse():
    (cookie,) = parse_set_cookies({"set-cookie": "a=1; Max-Age=soon; Domain=example.com"})

    assert cookie.expires == INVALID_EXPIRES
    assert cookie.domain == "example.com"


def test_name_and_value_are_percent_decoded_and_split_on_first_equals():
    (cookie,) = parse_set_cookies({"set-cookie": "my%20name=a%3Db=c"})

    assert cookie.name == "my name"
    assert cookie.value == "a=b=c"


def test_missing_value_defaults_to_empty_string():
    (cookie,) = parse_set_cookies({"set-cookie": "flag; Secure"})

    assert cookie.name == "flag"
    assert cookie.value == ""
    assert cookie.secure is True


def test_same_site_is_recorded_verbatim():
    cookies = parse_set_cookies({"set-cookie": "a=1; SameSite=lax, b=2; SameSite=Bogus"})

    assert [cookie.same_site for cookie in cookies] == ["lax", "Bogus"]


def test_attribute_keys_are_case_insensitive():
    (cookie,) = parse_set_cookies(
        {"set-cookie": "a=1; DOMAIN=example.com; PATH=/; SECURE; HTTPONLY"}
    )

    assert cookie == Cookie(
        name="a",
        value="1",
        domain="example.com",
        path="/",
        secure=True,
        http_only=True,
    )


def test_reads_case_insensitive_header_collections():
    headers = CaseInsensitiveDict({"Set-Cookie": "a=1"})

    assert parse_set_cookies(headers) == [Cookie(name="a", value="1")]


def test_split_skips_empty_segments():
    assert split_set_cookie_header("a=1, , b=2,") == ["a=1", "b=2"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("Wed, 09 Jun 2021 10:18:14 GMT", datetime(2021, 6, 9, 10, 18, 14, tzinfo=timezone.utc)),
        ("2021-06-09T10:18:14+00:00", datetime(2021, 6, 9, 10, 18, 14, tzinfo=timezone.utc)),
        ("2021-06-09T10:18:14", datetime(2021, 6, 9, 10, 18, 14, tzinfo=timezone.utc)),
        ("garbage", INVALID_EXPIRES),
        ("", INVALID_EXPIRES),
    ],
)
def test_parse_cookie_date(value, expected):
    assert parse_cookie_date(value) == expected
