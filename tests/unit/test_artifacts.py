"""
Unit tests for artifact lifecycle management.

Tests livetex.contexts.session.artifacts.
"""

import pytest

from livetex.contexts.session.artifacts import (
    ArtifactDecodeError,
    ArtifactLifecycle,
    ArtifactReleasedError,
)


class FakePending:
    """Stand-in for an asyncio timer/task."""

    def __init__(self):
        self.cancel_calls = 0
        self.finished = False

    def cancel(self):
        self.cancel_calls += 1

    def done(self):
        return self.finished


class TestPublishPromote:
    """Handle allocation and swapping."""

    @pytest.mark.unit
    def test_publish_does_not_replace_live(self):
        lifecycle = ArtifactLifecycle(validator=None)
        first = lifecycle.promote(lifecycle.publish(b"one", 1))

        second = lifecycle.publish(b"two", 2)

        assert lifecycle.live is first
        assert lifecycle.allocated_count == 2
        assert not second.released

    @pytest.mark.unit
    @pytest.mark.parametrize("n", [1, 2, 5, 20])
    def test_no_leak_after_n_promotes(self, n):
        lifecycle = ArtifactLifecycle(validator=None)
        handles = []

        for i in range(1, n + 1):
            handle = lifecycle.publish(f"artifact {i}".encode(), i)
            assert lifecycle.allocated_count <= 2
            lifecycle.promote(handle)
            assert lifecycle.allocated_count == 1
            handles.append(handle)

        assert lifecycle.live is handles[-1]
        assert lifecycle.released_count == n - 1
        assert [h.released for h in handles] == [True] * (n - 1) + [False]

    @pytest.mark.unit
    def test_live_handle_reads_its_bytes(self):
        lifecycle = ArtifactLifecycle(validator=None)
        handle = lifecycle.promote(lifecycle.publish(b"%PDF-fake", 3))

        assert handle.read() == b"%PDF-fake"
        assert handle.sequence_number == 3
        assert handle.url.startswith("artifact://")

    @pytest.mark.unit
    def test_handles_have_distinct_urls(self):
        lifecycle = ArtifactLifecycle(validator=None)

        assert lifecycle.publish(b"a", 1).url != lifecycle.publish(b"a", 2).url

    @pytest.mark.unit
    def test_released_handle_cannot_be_read(self):
        lifecycle = ArtifactLifecycle(validator=None)
        old = lifecycle.promote(lifecycle.publish(b"old", 1))
        lifecycle.promote(lifecycle.publish(b"new", 2))

        assert old.released
        with pytest.raises(ArtifactReleasedError):
            old.read()

    @pytest.mark.unit
    def test_promote_foreign_handle_raises(self):
        ours = ArtifactLifecycle(validator=None)
        theirs = ArtifactLifecycle(validator=None)
        handle = theirs.publish(b"x", 1)

        with pytest.raises(ValueError):
            ours.promote(handle)

    @pytest.mark.unit
    def test_promote_released_handle_raises(self):
        lifecycle = ArtifactLifecycle(validator=None)
        old = lifecycle.promote(lifecycle.publish(b"old", 1))
        lifecycle.promote(lifecycle.publish(b"new", 2))

        with pytest.raises(ValueError):
            lifecycle.promote(old)


class TestValidation:
    """A bad artifact never replaces a good one."""

    @pytest.mark.unit
    def test_rejected_artifact_keeps_previous_live(self):
        lifecycle = ArtifactLifecycle(validator=lambda data: data != b"corrupt")
        good = lifecycle.promote(lifecycle.publish(b"good", 1))
        bad = lifecycle.publish(b"corrupt", 2)

        with pytest.raises(ArtifactDecodeError):
            lifecycle.promote(bad)

        assert lifecycle.live is good
        assert good.read() == b"good"
        assert bad.released
        assert lifecycle.allocated_count == 1

    @pytest.mark.unit
    def test_default_validator_rejects_non_pdf(self):
        lifecycle = ArtifactLifecycle()
        handle = lifecycle.publish(b"definitely not a pdf", 1)

        with pytest.raises(ArtifactDecodeError):
            lifecycle.promote(handle)

        assert lifecycle.live is None
        assert lifecycle.allocated_count == 0


class TestReleaseAll:
    """Teardown."""

    @pytest.mark.unit
    def test_releases_every_handle(self):
        lifecycle = ArtifactLifecycle(validator=None)
        live = lifecycle.promote(lifecycle.publish(b"live", 1))
        pending = lifecycle.publish(b"pending", 2)

        lifecycle.release_all()

        assert live.released and pending.released
        assert lifecycle.live is None
        assert lifecycle.allocated_count == 0

    @pytest.mark.unit
    def test_is_idempotent(self):
        lifecycle = ArtifactLifecycle(validator=None)
        lifecycle.promote(lifecycle.publish(b"live", 1))
        timer = FakePending()
        lifecycle.track(timer)

        lifecycle.release_all()
        lifecycle.release_all()

        assert lifecycle.released_count == 1
        assert timer.cancel_calls == 1

    @pytest.mark.unit
    def test_cancels_tracked_pending_work(self):
        lifecycle = ArtifactLifecycle(validator=None)
        timer, task = FakePending(), FakePending()
        lifecycle.track(timer)
        lifecycle.track(task)

        lifecycle.release_all()

        assert timer.cancel_calls == 1
        assert task.cancel_calls == 1

    @pytest.mark.unit
    def test_finished_work_is_pruned(self):
        lifecycle = ArtifactLifecycle(validator=None)
        finished = FakePending()
        lifecycle.track(finished)
        finished.finished = True
        lifecycle.track(FakePending())

        lifecycle.release_all()

        assert finished.cancel_calls == 0

    @pytest.mark.unit
    def test_publish_after_release_all_raises(self):
        lifecycle = ArtifactLifecycle(validator=None)
        lifecycle.release_all()

        with pytest.raises(RuntimeError):
            lifecycle.publish(b"late", 1)
