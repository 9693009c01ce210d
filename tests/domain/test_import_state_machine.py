"""Tests for the import session state machine."""

import pytest

from catalog_sync.application.feed_reconciler import ImportSession
from catalog_sync.domain.exceptions import InvalidStateTransitionError
from catalog_sync.domain.state_machines import ImportSessionStatus, validate_import_transition


class TestImportSessionStatus:
    """Tests for ImportSessionStatus transitions."""

    def test_idle_can_start_resume_or_finish(self) -> None:
        """IDLE accepts every entry point."""
        status = ImportSessionStatus.IDLE
        assert status.can_transition_to(ImportSessionStatus.INITIALIZED)
        assert status.can_transition_to(ImportSessionStatus.ACCUMULATING)
        assert status.can_transition_to(ImportSessionStatus.FINALIZING)
        assert not status.can_transition_to(ImportSessionStatus.IDLE)

    def test_accumulating_can_repeat(self) -> None:
        """Every row keeps the session accumulating."""
        status = ImportSessionStatus.ACCUMULATING
        assert status.can_transition_to(ImportSessionStatus.ACCUMULATING)
        assert status.can_transition_to(ImportSessionStatus.INITIALIZED)

    def test_finalizing_only_returns_to_idle(self) -> None:
        """FINALIZING can only end the run."""
        status = ImportSessionStatus.FINALIZING
        assert status.allowed_transitions() == [ImportSessionStatus.IDLE]

    def test_is_active(self) -> None:
        """Only IDLE is inactive."""
        assert not ImportSessionStatus.IDLE.is_active()
        assert ImportSessionStatus.ACCUMULATING.is_active()


class TestValidateImportTransition:
    """Tests for validate_import_transition."""

    def test_valid_transition_passes(self) -> None:
        """Allowed transitions do not raise."""
        validate_import_transition(
            "feed", ImportSessionStatus.INITIALIZED, ImportSessionStatus.ACCUMULATING
        )

    def test_invalid_transition_raises(self) -> None:
        """Disallowed transitions raise with context."""
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            validate_import_transition(
                "feed-1", ImportSessionStatus.FINALIZING, ImportSessionStatus.ACCUMULATING
            )

        details = exc_info.value.details
        assert details["entity_type"] == "ImportSession"
        assert details["entity_id"] == "feed-1"
        assert details["current_state"] == "finalizing"
        assert details["allowed_transitions"] == ["idle"]

    def test_session_rejects_row_while_finalizing(self) -> None:
        """A session being applied refuses new rows."""
        session = ImportSession(feed_key="feed", status=ImportSessionStatus.FINALIZING)

        with pytest.raises(InvalidStateTransitionError):
            session.transition_to(ImportSessionStatus.ACCUMULATING)
        assert session.status == ImportSessionStatus.FINALIZING
