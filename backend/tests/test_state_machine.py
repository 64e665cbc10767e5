"""
Tests for the order state machine.

Validates:
- Each of the three transitions out of pending and the fields they set
- Terminal states reject every further transition and stay unchanged
- Empty reasons / content fail validation without mutating the order
- original_content is never overwritten
- The status guard in the UPDATE decides races between two reviewers
"""
import pytest
from datetime import timedelta
from uuid import uuid4

from app.errors import InvalidStateTransition, NotFoundError, ValidationError
from app.models.order import OrderStatus, ApprovalMethod
from app.services.clock import utcnow
from app.services.state_machine import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    approve,
    can_transition,
    load_order,
    modify_and_approve,
    reject,
)


async def _snapshot(db, order_id):
    order = await load_order(db, order_id, fresh=True)
    return {
        "status": order.status,
        "approved_at": order.approved_at,
        "rejection_reason": order.rejection_reason,
        "modified_content": order.modified_content,
        "is_modified": order.is_modified,
        "modification_time": order.modification_time,
        "original_content": order.original_content,
    }


# =============================================================================
# Transition table
# =============================================================================

def test_every_status_has_a_transition_entry():
    """Adding a status without deciding its transitions is a bug"""
    assert set(ALLOWED_TRANSITIONS) == set(OrderStatus)


def test_only_pending_is_non_terminal():
    assert TERMINAL_STATUSES == {
        OrderStatus.APPROVED,
        OrderStatus.REJECTED,
        OrderStatus.APPROVED_MODIFIED,
    }
    for target in TERMINAL_STATUSES:
        assert can_transition(OrderStatus.PENDING, target)
        for other in OrderStatus:
            assert not can_transition(target, other)


# =============================================================================
# Valid transitions
# =============================================================================

@pytest.mark.asyncio
async def test_new_order_satisfies_pending_invariants(pending_order):
    assert pending_order.status == OrderStatus.PENDING.value
    assert pending_order.approved_at is None
    assert pending_order.rejection_reason is None
    assert pending_order.is_modified is False
    assert pending_order.modified_content is None


@pytest.mark.asyncio
async def test_pending_to_approved(db, pending_order, admin_user):
    """Test pending → approved"""
    before = utcnow()
    result = await approve(db, pending_order.id, approved_by=admin_user.id)

    assert result.status == OrderStatus.APPROVED.value
    assert result.approved_at is not None
    assert result.approved_at >= before - timedelta(seconds=1)
    assert result.approved_by == admin_user.id
    assert result.approval_method == ApprovalMethod.WEB_DASHBOARD.value
    assert result.rejection_reason is None
    assert result.is_modified is False


@pytest.mark.asyncio
async def test_pending_to_rejected(db, pending_order):
    """Test pending → rejected stores the trimmed reason"""
    result = await reject(db, pending_order.id, "  Amount does not match receipt  ")

    assert result.status == OrderStatus.REJECTED.value
    assert result.rejection_reason == "Amount does not match receipt"
    assert result.approved_at is not None
    assert result.is_modified is False


@pytest.mark.asyncio
async def test_pending_to_approved_modified(db, pending_order):
    """Test pending → approved_modified keeps the original text"""
    result = await modify_and_approve(db, pending_order.id, "new text")

    assert result.status == OrderStatus.APPROVED_MODIFIED.value
    assert result.original_content == "Deposit 100 for customer A"
    assert result.modified_content == "new text"
    assert result.is_modified is True
    assert result.modification_time is not None
    # Same transition instant
    assert result.approved_at == result.modification_time
    assert result.effective_content == "new text"


@pytest.mark.asyncio
async def test_bot_panel_method_recorded(db, pending_order):
    result = await approve(db, pending_order.id, method=ApprovalMethod.BOT_PANEL)
    assert result.approval_method == ApprovalMethod.BOT_PANEL.value


# =============================================================================
# Terminal states
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("first", ["approve", "reject", "modify"])
@pytest.mark.parametrize("second", ["approve", "reject", "modify"])
async def test_terminal_states_are_final(db, pending_order, first, second):
    """Any second transition fails and leaves the record unchanged"""
    actions = {
        "approve": lambda: approve(db, pending_order.id),
        "reject": lambda: reject(db, pending_order.id, "duplicate report"),
        "modify": lambda: modify_and_approve(db, pending_order.id, "corrected text"),
    }
    await actions[first]()
    before = await _snapshot(db, pending_order.id)

    with pytest.raises(InvalidStateTransition):
        await actions[second]()

    assert await _snapshot(db, pending_order.id) == before


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_reject_requires_reason(db, pending_order, reason):
    before = await _snapshot(db, pending_order.id)

    with pytest.raises(ValidationError):
        await reject(db, pending_order.id, reason)

    assert await _snapshot(db, pending_order.id) == before


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", " \n\t ", None])
async def test_modify_requires_content(db, pending_order, content):
    before = await _snapshot(db, pending_order.id)

    with pytest.raises(ValidationError):
        await modify_and_approve(db, pending_order.id, content)

    assert await _snapshot(db, pending_order.id) == before


@pytest.mark.asyncio
async def test_validation_precedes_state_check(db, pending_order):
    """An empty reason on a terminal order is still a validation error"""
    await approve(db, pending_order.id)

    with pytest.raises(ValidationError):
        await reject(db, pending_order.id, "  ")


@pytest.mark.asyncio
async def test_unknown_order(db):
    with pytest.raises(NotFoundError):
        await approve(db, uuid4())

    with pytest.raises(NotFoundError):
        await approve(db, "not-a-uuid")


# =============================================================================
# Concurrency
# =============================================================================

@pytest.mark.asyncio
async def test_stale_reviewer_loses_race(db, other_session, pending_order):
    """
    Two admins open the same pending order; the second write is refused by the
    status guard even though its own copy of the order still says pending.
    """
    stale = await load_order(other_session, pending_order.id)
    assert stale.status == OrderStatus.PENDING.value

    await approve(db, pending_order.id)

    with pytest.raises(InvalidStateTransition):
        await reject(other_session, pending_order.id, "too late")

    final = await load_order(db, pending_order.id, fresh=True)
    assert final.status == OrderStatus.APPROVED.value
    assert final.rejection_reason is None


@pytest.mark.asyncio
async def test_double_approve_has_one_winner(db, other_session, pending_order, admin_user):
    await load_order(other_session, pending_order.id)

    winner = await approve(db, pending_order.id, approved_by=admin_user.id)

    with pytest.raises(InvalidStateTransition):
        await approve(other_session, pending_order.id)

    final = await load_order(db, pending_order.id, fresh=True)
    assert final.approved_by == admin_user.id
    assert final.approved_at == winner.approved_at


@pytest.mark.asyncio
async def test_stale_modify_does_not_write_content(db, other_session, pending_order):
    await load_order(other_session, pending_order.id)
    await reject(db, pending_order.id, "wrong customer")

    with pytest.raises(InvalidStateTransition):
        await modify_and_approve(other_session, pending_order.id, "sneaky edit")

    final = await load_order(db, pending_order.id, fresh=True)
    assert final.status == OrderStatus.REJECTED.value
    assert final.modified_content is None
    assert final.is_modified is False
