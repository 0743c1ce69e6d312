from __future__ import annotations

import base64
import json
import os
import time
from datetime import timedelta
from pathlib import Path

import pytest

from hq_admin_e2e.config import AppEnv
from hq_admin_e2e.models import OriginStorage, SessionSnapshot, StorageEntry
from hq_admin_e2e.session.cache import SessionCache, token_expiry

ORIGIN = "http://hqadmin.localhost:8087"


def make_token(claims: dict) -> str:
    def encode(data: dict) -> str:
        return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()

    return f"{encode({'alg': 'HS256'})}.{encode(claims)}.signature"


def write_state(path: Path, entries: list[dict] | None, *, age: float = 0.0, origin: str = ORIGIN) -> None:
    origins = [] if entries is None else [{"origin": origin, "localStorage": entries}]
    path.write_text(json.dumps({"cookies": [], "origins": origins}))
    if age:
        stamp = time.time() - age
        os.utime(path, (stamp, stamp))


@pytest.fixture
def auth_file(tmp_path: Path) -> Path:
    return tmp_path / ".auth" / "hq-admin-local.json"


def test_acquire_returns_none_when_file_missing(auth_file: Path) -> None:
    assert SessionCache(auth_file).acquire() is None


def test_acquire_treats_malformed_file_as_missing(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    auth_file.write_text("{not json")
    assert SessionCache(auth_file).acquire() is None

    auth_file.write_text(json.dumps({"origins": [{"localStorage": "nope"}]}))
    assert SessionCache(auth_file).acquire() is None


def test_acquire_is_repeatable(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    write_state(auth_file, [{"name": "hq-admin.campaignAi", "value": "true"}])
    cache = SessionCache(auth_file)

    first = cache.acquire()
    second = cache.acquire()

    assert first == second
    assert first is not None and first.modified_at is not None
    assert first.origins[0].local_storage[0].name == "hq-admin.campaignAi"


def test_snapshot_without_entries_is_not_usable(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    cache = SessionCache(auth_file)

    write_state(auth_file, None)
    assert cache.is_usable(cache.acquire()) is False

    write_state(auth_file, [])
    assert cache.is_usable(cache.acquire()) is False

    assert cache.is_usable(None) is False


def test_expired_token_claim_makes_snapshot_unusable(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    token = make_token({"sub": "admin", "exp": time.time() - 10})
    write_state(auth_file, [{"name": "accessToken", "value": token}])
    cache = SessionCache(auth_file)

    snapshot = cache.acquire()

    assert cache.is_usable(snapshot) is False
    assert cache.validity(snapshot).expired is True


def test_valid_token_claim_wins_over_file_age(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    token = make_token({"exp": int(time.time()) + 3600})
    write_state(auth_file, [{"name": "hq-admin.auth", "value": token}], age=48 * 3600)
    cache = SessionCache(auth_file)

    assert cache.is_usable(cache.acquire()) is True


def test_first_matching_entry_per_origin_is_used(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    expired = make_token({"exp": time.time() - 60})
    fresh = make_token({"exp": time.time() + 60})
    write_state(
        auth_file,
        [
            {"name": "theme", "value": "dark"},
            {"name": "token", "value": expired},
            {"name": "refresh_token", "value": fresh},
        ],
    )
    cache = SessionCache(auth_file)

    assert cache.is_usable(cache.acquire()) is False


def test_origins_are_scanned_in_order(auth_file: Path) -> None:
    snapshot = SessionSnapshot(
        origins=[
            OriginStorage(origin="http://a", local_storage=[StorageEntry(name="auth", value="opaque")]),
            OriginStorage(
                origin="http://b",
                local_storage=[StorageEntry(name="token", value=make_token({"exp": time.time() + 60}))],
            ),
        ]
    )
    validity = SessionCache(auth_file).validity(snapshot)

    assert validity.expired is False
    assert "http://b" in validity.reason


def test_key_match_is_case_sensitive(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    write_state(auth_file, [{"name": "AccessTOKEN", "value": make_token({"exp": 1})}])
    cache = SessionCache(auth_file)

    assert cache.is_usable(cache.acquire()) is True


@pytest.mark.parametrize("age_hours, usable", [(1, True), (22.5, True), (24, False)])
def test_age_fallback_without_token(auth_file: Path, age_hours: float, usable: bool) -> None:
    auth_file.parent.mkdir(parents=True)
    write_state(auth_file, [{"name": "authToken", "value": "not-a-jwt"}], age=age_hours * 3600)
    cache = SessionCache(auth_file)

    assert cache.is_usable(cache.acquire()) is usable


def test_age_threshold_is_configurable(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    write_state(auth_file, [{"name": "flag", "value": "true"}], age=2 * 3600)

    assert SessionCache(auth_file, max_age=timedelta(hours=1)).is_usable(
        SessionCache(auth_file).acquire()
    ) is False
    assert SessionCache(auth_file, max_age=timedelta(hours=3)).is_usable(
        SessionCache(auth_file).acquire()
    ) is True


def test_disabled_expiry_check_accepts_any_non_empty_snapshot(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    write_state(
        auth_file,
        [{"name": "token", "value": make_token({"exp": time.time() - 10})}],
        age=30 * 24 * 3600,
    )
    cache = SessionCache(auth_file, check_expiry=False)

    assert cache.is_usable(cache.acquire()) is True


def test_snapshot_without_known_age_falls_back_to_expired(auth_file: Path) -> None:
    snapshot = SessionSnapshot(
        origins=[OriginStorage(origin=ORIGIN, local_storage=[StorageEntry(name="flag", value="1")])]
    )
    assert SessionCache(auth_file).is_usable(snapshot) is False


def test_persist_overwrites_and_round_trips_playwright_layout(auth_file: Path) -> None:
    auth_file.parent.mkdir(parents=True)
    auth_file.write_text("stale")
    state = {
        "cookies": [
            {
                "name": "sid",
                "value": "abc",
                "domain": "hqadmin.localhost",
                "path": "/",
                "expires": -1,
                "httpOnly": True,
                "secure": False,
                "sameSite": "Lax",
            }
        ],
        "origins": [{"origin": ORIGIN, "localStorage": [{"name": "hq-admin.campaignAi", "value": "true"}]}],
    }
    cache = SessionCache(auth_file)

    cache.persist(SessionSnapshot.model_validate(state))

    written = json.loads(auth_file.read_text())
    assert written == state
    assert cache.is_usable(cache.acquire()) is True


def test_persist_creates_parent_directories(tmp_path: Path) -> None:
    cache = SessionCache(tmp_path / "nested" / "dir" / "state.json")
    cache.persist(
        SessionSnapshot(origins=[OriginStorage(origin=ORIGIN, local_storage=[StorageEntry(name="a", value="b")])])
    )
    assert cache.path.is_file()


def test_cache_path_is_keyed_by_environment(tmp_path: Path) -> None:
    local = SessionCache.for_environment(tmp_path, AppEnv.LOCAL)
    staging = SessionCache.for_environment(tmp_path, "staging")

    assert local.path == tmp_path / "hq-admin-local.json"
    assert staging.path == tmp_path / "hq-admin-staging.json"
    with pytest.raises(ValueError):
        SessionCache.for_environment(tmp_path, "../etc")


@pytest.mark.parametrize(
    "value, expected",
    [
        (make_token({"exp": 1700000000}), 1700000000.0),
        (make_token({"exp": 1.5}), 1.5),
        (make_token({"exp": True}), None),
        (make_token({"exp": "1700000000"}), None),
        (make_token({"sub": "x"}), None),
        ("a.%%%.c", None),
        ("only.two", None),
        ("plain-value", None),
    ],
)
def test_token_expiry(value: str, expected: float | None) -> None:
    assert token_expiry(value) == expected


def test_token_expiry_accepts_standard_base64_padding() -> None:
    payload = base64.b64encode(json.dumps({"exp": 42}).encode()).decode()
    assert token_expiry(f"h.{payload}.s") == 42.0
