from __future__ import annotations

import pytest

from pyyelo._constants import BACKEND_USER_KEY, TOKEN_KEY
from pyyelo.session import AuthState, Session
from pyyelo.storage import MemoryStorage


def test_session_from_backend_user() -> None:
    session = Session.from_backend_user("tok", {"_id": "u1", "name": "Asha"})
    assert session is not None
    assert session.user_id == "u1"
    assert Session.from_backend_user("", {"_id": "u1"}) is None
    assert Session.from_backend_user("tok", {"name": "nobody"}) is None


@pytest.mark.asyncio
async def test_restore_reads_persisted_session() -> None:
    storage = MemoryStorage({TOKEN_KEY: "tok", BACKEND_USER_KEY: {"id": "u7"}})
    auth = AuthState(storage)
    transitions: list[str | None] = []

    async def _listener(session: Session | None) -> None:
        transitions.append(session.user_id if session else None)

    auth.subscribe(_listener)
    assert auth.loading

    restored = await auth.restore()

    assert not auth.loading
    assert restored is not None and restored.user_id == "u7"
    assert auth.signed_in
    assert transitions == ["u7"]


@pytest.mark.asyncio
async def test_sign_in_and_out_persist_and_notify_on_transitions() -> None:
    storage = MemoryStorage()
    auth = AuthState(storage)
    transitions: list[str | None] = []

    async def _listener(session: Session | None) -> None:
        transitions.append(session.user_id if session else None)

    async def _broken(_session: Session | None) -> None:
        raise RuntimeError("listener bug")

    auth.subscribe(_broken)
    unsubscribe = auth.subscribe(_listener)

    await auth.sign_in(Session(user_id="u1", token="t1", user={"_id": "u1"}))
    assert await storage.get(TOKEN_KEY) == "t1"
    await auth.sign_in(Session(user_id="u1", token="t2", user={"_id": "u1"}))
    await auth.sign_in(Session(user_id="u2", token="t3", user={"_id": "u2"}))
    await auth.sign_out()
    await auth.sign_out()

    assert transitions == ["u1", "u2", None]
    assert await storage.get(TOKEN_KEY) is None
    assert await storage.get(BACKEND_USER_KEY) is None

    unsubscribe()
    await auth.sign_in(Session(user_id="u3", token="t4"))
    assert transitions == ["u1", "u2", None]
