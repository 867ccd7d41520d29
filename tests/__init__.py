# tests/__init__.py
# --------------------------------------------------------------------------------------
# Shared test helpers. Fixtures live in tests/conftest.py; plain helpers that tests
# import directly live here (``from tests import FlakyStore``).
# --------------------------------------------------------------------------------------

from typing import Any, List, Set, Tuple

from edumanager.exceptions import StoreError


class FlakyStore:
    """
    Wraps a record store and raises ``StoreError`` from the named methods.

    Every call is recorded in ``calls`` as ``(method, table)`` so tests can
    assert which store operations a repository performed.
    """

    def __init__(self, inner: Any, fail_on: Tuple[str, ...] = ()) -> None:
        self.inner = inner
        self.fail_on: Set[str] = set(fail_on)
        self.calls: List[Tuple[str, Any]] = []

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.inner, name)
        if not callable(attr):
            return attr

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            table = args[0] if args else None
            self.calls.append((name, table))
            if name in self.fail_on:
                raise StoreError(f"simulated {name} failure", table=table, operation=name)
            return await attr(*args, **kwargs)

        return wrapper
