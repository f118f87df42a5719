from lockbox_core.actions import (
    ErrorAction,
    ListAction,
    LockedAction,
    ScopedKeyAction,
)
from lockbox_core.exceptions import LockedError, NotInitializedError
from lockbox_core.models.item import Item


def test_list_actions_are_equal_whatever_their_items() -> None:
    first = ListAction(items={"a": Item(id="a", title="A")})
    second = ListAction(items={"b": Item(id="b", title="B")})

    assert first == second
    assert first == ListAction()


def test_list_action_is_not_equal_to_other_datastore_actions() -> None:
    assert ListAction() != LockedAction(locked=True)


def test_error_actions_compare_type_and_message() -> None:
    assert ErrorAction(LockedError()) == ErrorAction(LockedError())
    assert ErrorAction(LockedError()) != ErrorAction(NotInitializedError())
    assert ErrorAction(ValueError("a")) != ErrorAction(ValueError("b"))


def test_error_actions_are_hashable() -> None:
    assert len({ErrorAction(LockedError()), ErrorAction(LockedError())}) == 1


def test_scoped_key_is_hidden_from_repr() -> None:
    action = ScopedKeyAction(key='{"k":"secret"}')

    assert "secret" not in repr(action)
