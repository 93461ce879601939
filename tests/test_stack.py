"""Tests for the per-session directory stack."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from qcd import Database, SessionStack, new_session_id
from qcd.config import QcdConfig
from qcd.errors import EmptyStack, InvalidPath, StorageBusy


DAY = 24 * 60 * 60


class TestPushPop:
    """Tests for push, pop and top."""

    def test_round_trip(self, stack: SessionStack) -> None:
        """Pops return pushes in reverse order, then None."""
        stack.push("/home/east")
        stack.push("/home/south")

        assert stack.pop() == "/home/south"
        assert stack.pop() == "/home/east"
        assert stack.pop() is None

    def test_entries_top_first(self, stack: SessionStack) -> None:
        stack.push("/home/east")
        stack.push("/home/south")

        assert [e.path for e in stack.entries()] == ["/home/south", "/home/east"]

    def test_duplicate_top_suppressed(self, stack: SessionStack) -> None:
        assert stack.push("/a") is True
        assert stack.push("/a") is False

        assert len(stack.entries()) == 1

    def test_duplicate_below_top_allowed(self, stack: SessionStack) -> None:
        """Only the top is compared."""
        stack.push("/a")
        stack.push("/b")
        stack.push("/a")

        assert [e.path for e in stack.entries()] == ["/a", "/b", "/a"]

    def test_push_normalizes(self, stack: SessionStack) -> None:
        stack.push("/a/b/")

        assert stack.push("/a/b") is False

    def test_push_relative_rejected(self, stack: SessionStack) -> None:
        with pytest.raises(InvalidPath):
            stack.push("a/b")

    def test_top(self, stack: SessionStack, clock) -> None:
        assert stack.top() is None

        stack.push("/a")
        top = stack.top()

        assert top is not None
        assert top.path == "/a"
        assert top.session_id == stack.session_id
        assert top.timestamp == int(clock.now)
        # top() does not remove anything
        assert stack.pop() == "/a"

    def test_pop_after_interleaved_push(self, stack: SessionStack) -> None:
        """Row order stays correct when pops and pushes alternate."""
        stack.push("/a")
        stack.push("/b")
        stack.pop()
        stack.push("/c")

        assert stack.pop() == "/c"
        assert stack.pop() == "/a"

    def test_drop(self, stack: SessionStack) -> None:
        stack.push("/a")
        stack.push("/b")

        assert stack.drop() == "/b"
        assert [e.path for e in stack.entries()] == ["/a"]

    def test_drop_empty(self, stack: SessionStack) -> None:
        with pytest.raises(EmptyStack):
            stack.drop()


class TestSwap:
    """Tests for swap."""

    def test_swap_exchanges_top(self, stack: SessionStack) -> None:
        stack.push("/A")

        assert stack.swap("/C") == "/A"
        assert stack.top().path == "/C"

    def test_swap_twice_restores(self, stack: SessionStack) -> None:
        stack.push("/A")

        assert stack.swap(current="/C") == "/A"
        assert stack.swap(current="/A") == "/C"
        assert [e.path for e in stack.entries()] == ["/A"]

    def test_swap_keeps_rest_of_stack(self, stack: SessionStack) -> None:
        stack.push("/bottom")
        stack.push("/A")

        stack.swap("/C")

        assert [e.path for e in stack.entries()] == ["/C", "/bottom"]

    def test_swap_empty(self, stack: SessionStack) -> None:
        with pytest.raises(EmptyStack):
            stack.swap("/C")

        assert stack.entries() == []

    def test_swap_invalid_current_leaves_stack(self, stack: SessionStack) -> None:
        stack.push("/A")

        with pytest.raises(InvalidPath):
            stack.swap("relative")

        assert stack.top().path == "/A"


class TestSessionIsolation:
    """Stacks of different sessions never see each other."""

    def test_pop_other_session(self, stack: SessionStack, other_stack: SessionStack) -> None:
        stack.push("/mine")

        assert other_stack.pop() is None
        assert stack.pop() == "/mine"

    def test_duplicate_check_per_session(
        self, stack: SessionStack, other_stack: SessionStack
    ) -> None:
        stack.push("/a")

        assert other_stack.push("/a") is True
        assert len(stack.entries()) == 1
        assert len(other_stack.entries()) == 1

    def test_swap_other_session_empty(
        self, stack: SessionStack, other_stack: SessionStack
    ) -> None:
        stack.push("/a")

        with pytest.raises(EmptyStack):
            other_stack.swap("/b")
        assert stack.top().path == "/a"


class TestConcurrentAccess:
    """Two processes sharing one database file."""

    SESSION = "20240101120000000000003"

    def test_pop_and_swap_wait_for_writer(self, db_path: Path) -> None:
        """A stack update blocked past the busy timeout fails and changes nothing."""
        holder = Database(db_path).open()
        waiter = Database(db_path, timeout=0.05).open()
        try:
            SessionStack(holder, self.SESSION).push("/a")
            SessionStack(holder, self.SESSION).push("/b")

            with holder.transaction():
                with pytest.raises(StorageBusy):
                    SessionStack(waiter, self.SESSION).pop()
                with pytest.raises(StorageBusy):
                    SessionStack(waiter, self.SESSION).swap("/c")
                with pytest.raises(StorageBusy):
                    SessionStack(waiter, self.SESSION).drop()

            paths = [e.path for e in SessionStack(waiter, self.SESSION).entries()]
            assert paths == ["/b", "/a"]
        finally:
            waiter.close()
            holder.close()

    def test_pops_never_share_a_top(self, db_path: Path) -> None:
        """Each connection sees the entries left by the other's committed pop."""
        first = Database(db_path).open()
        second = Database(db_path).open()
        try:
            SessionStack(first, self.SESSION).push("/a")
            SessionStack(first, self.SESSION).push("/b")

            assert SessionStack(first, self.SESSION).pop() == "/b"
            assert SessionStack(second, self.SESSION).pop() == "/a"
            assert SessionStack(first, self.SESSION).pop() is None
        finally:
            second.close()
            first.close()


class TestPrune:
    """Tests for age-based eviction."""

    def test_old_entry_pruned(self, stack: SessionStack, clock) -> None:
        stack.push("/old")
        clock.advance(22 * DAY)

        assert stack.prune() == 1
        assert stack.entries() == []

    def test_recent_entry_kept(self, stack: SessionStack, clock) -> None:
        stack.push("/recent")
        clock.advance(21 * DAY - 1)

        assert stack.prune() == 0
        assert [e.path for e in stack.entries()] == ["/recent"]

    def test_boundary_is_inclusive(self, stack: SessionStack, clock) -> None:
        """An entry exactly 21 days old is deleted."""
        stack.push("/edge")

        assert stack.prune(now=clock.now + 21 * DAY) == 1

    def test_prune_all_sessions(
        self, stack: SessionStack, other_stack: SessionStack, clock
    ) -> None:
        stack.push("/a")
        other_stack.push("/b")

        assert stack.prune(now=clock.now + 30 * DAY) == 2
        assert other_stack.entries() == []

    def test_custom_retention(self, stack: SessionStack, clock) -> None:
        stack.push("/a")

        assert stack.prune(retention=timedelta(hours=1), now=clock.now + 3600) == 1

    def test_operations_prune_first(self, stack: SessionStack, clock) -> None:
        """Expired entries are invisible to pop."""
        stack.push("/expired")
        clock.advance(21 * DAY)
        stack.push("/fresh")

        assert stack.pop() == "/fresh"
        assert stack.pop() is None

    def test_pruned_top_does_not_suppress_push(
        self, stack: SessionStack, clock
    ) -> None:
        stack.push("/a")
        clock.advance(25 * DAY)

        assert stack.push("/a") is True
        assert len(stack.entries()) == 1

    def test_stack_retention_from_constructor(self, db: Database, clock) -> None:
        short = SessionStack(
            db, "20240101120000000000009", retention=timedelta(days=1), clock=clock
        )
        short.push("/a")
        clock.advance(DAY)

        assert short.pop() is None


class TestSessionId:
    """Tests for new_session_id."""

    def test_format(self) -> None:
        # 2024-01-01 12:00:00.000000123 UTC
        sid = new_session_id(1_704_110_400 * 1_000_000_000 + 123)

        assert sid == "20240101120000000000123"

    def test_fresh_id_is_valid_session(self) -> None:
        sid = new_session_id()

        assert len(sid) == 23
        assert sid.isdigit()
        assert QcdConfig(session_id=sid).has_session
