"""Tests for the decision table (no filesystem involved)."""

import pytest

from prompt_sync.engine.decisions import Action, Command, decide
from prompt_sync.models import Status

# (status, command, force, only_missing) -> expected action
TABLE = [
    # OK is always skipped
    (Status.OK, Command.LINK, False, False, Action.SKIP),
    (Status.OK, Command.LINK, True, True, Action.SKIP),
    (Status.OK, Command.REPAIR, True, False, Action.SKIP),
    # MISSING is always created
    (Status.MISSING, Command.LINK, False, False, Action.CREATE),
    (Status.MISSING, Command.LINK, False, True, Action.CREATE),
    (Status.MISSING, Command.REPAIR, False, False, Action.CREATE),
    # link gates BROKEN and CONFLICT on --only-missing, then --force
    (Status.BROKEN, Command.LINK, False, False, Action.FAIL),
    (Status.BROKEN, Command.LINK, True, False, Action.REPLACE),
    (Status.BROKEN, Command.LINK, True, True, Action.SKIP),
    (Status.CONFLICT, Command.LINK, False, False, Action.FAIL),
    (Status.CONFLICT, Command.LINK, True, False, Action.REPLACE),
    (Status.CONFLICT, Command.LINK, False, True, Action.SKIP),
    # repair replaces BROKEN unconditionally, CONFLICT only with --force
    (Status.BROKEN, Command.REPAIR, False, False, Action.REPLACE),
    (Status.BROKEN, Command.REPAIR, True, False, Action.REPLACE),
    (Status.CONFLICT, Command.REPAIR, False, False, Action.SKIP),
    (Status.CONFLICT, Command.REPAIR, True, False, Action.REPLACE),
    # ERROR passes through
    (Status.ERROR, Command.LINK, True, False, Action.PASS_THROUGH),
    (Status.ERROR, Command.REPAIR, True, False, Action.PASS_THROUGH),
]


@pytest.mark.parametrize("status,command,force,only_missing,expected", TABLE)
def test_decision_table(status, command, force, only_missing, expected):
    assert decide(status, command, force, only_missing).action == expected


def test_skip_messages_name_the_reason():
    assert decide(Status.OK, Command.LINK).message == "already linked"
    assert decide(Status.OK, Command.REPAIR).message == "already healthy"
    assert "only-missing" in decide(Status.CONFLICT, Command.LINK, only_missing=True).message
    assert "conflict skipped" in decide(Status.CONFLICT, Command.REPAIR).message


def test_link_without_force_explains_how_to_proceed():
    decision = decide(Status.CONFLICT, Command.LINK)
    assert decision.action == Action.FAIL
    assert "--force" in decision.message


def test_repair_does_not_need_force_for_broken_but_link_does():
    assert decide(Status.BROKEN, Command.REPAIR, force=False).action == Action.REPLACE
    assert decide(Status.BROKEN, Command.LINK, force=False).action == Action.FAIL


@pytest.mark.parametrize(
    "status",
    [Status.CREATED, Status.REPLACED, Status.WOULD_CREATE, Status.WOULD_REPLACE, Status.SKIPPED],
)
def test_action_only_statuses_are_rejected(status):
    for command in Command:
        decision = decide(status, command, force=True)
        assert decision.action == Action.FAIL
        assert decision.message == "unexpected state"
