"""Observable repository state."""

import logging
from concurrent.futures import Executor
from typing import Any, Callable, Dict, List, Optional

from tendril.git.models import StateField

logger = logging.getLogger(__name__)

Observer = Callable[[Any], None]


def _snapshot(value: Any) -> Any:
    """Return sequence values as a fresh list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


class Subscription:
    """Handle returned by :meth:`RepositoryStateView.subscribe`."""

    def __init__(self, state: "RepositoryState", field: StateField, observer: Observer, executor: Optional[Executor]):
        self._state = state
        self.field = field
        self.observer = observer
        self.executor = executor
        self.active = True

    def deliver(self, value: Any) -> None:
        """Hand a value to the observer on its execution context."""
        if not self.active:
            return
        if self.executor is not None:
            self.executor.submit(self.observer, value)
        else:
            self.observer(value)

    def cancel(self) -> None:
        """Stop receiving updates."""
        if self.active:
            self.active = False
            self._state.detach(self)


class RepositoryState:
    """Last known branch state of a repository.

    Each field keeps its current value and the observers registered for it.
    Only the owner calls :meth:`publish`; everyone else gets a
    :class:`RepositoryStateView`.
    """

    def __init__(self, unknown_branch_name: str = "Unknown Branch") -> None:
        """Initialize the state with default values.

        Parameters
        ----------
        unknown_branch_name : str
            Current branch name reported until the first refresh
        """
        self._values: Dict[StateField, Any] = {
            StateField.CURRENT_BRANCH: unknown_branch_name,
            StateField.BRANCHES: (),
            StateField.ALL_BRANCHES: (),
        }
        self._observers: Dict[StateField, List[Subscription]] = {field: [] for field in StateField}

    def value(self, field: StateField) -> Any:
        """Return the current value of a field."""
        return _snapshot(self._values[field])

    def publish(self, field: StateField, value: Any) -> None:
        """Store a new value and notify every observer of the field.

        Observers are notified even when the value did not change.
        """
        stored = tuple(value) if isinstance(value, list) else value
        self._values[field] = stored
        logger.debug("Publishing %s: %r", field.name, stored)
        for subscription in list(self._observers[field]):
            subscription.deliver(_snapshot(stored))

    def subscribe(self, field: StateField, observer: Observer, executor: Optional[Executor] = None) -> Subscription:
        subscription = Subscription(self, field, observer, executor)
        self._observers[field].append(subscription)
        subscription.deliver(_snapshot(self._values[field]))
        return subscription

    def detach(self, subscription: Subscription) -> None:
        if subscription in self._observers[subscription.field]:
            self._observers[subscription.field].remove(subscription)

    def view(self) -> "RepositoryStateView":
        """Return a read-only view of this state."""
        return RepositoryStateView(self)


class RepositoryStateView:
    """Read and subscribe access to a :class:`RepositoryState`."""

    def __init__(self, state: RepositoryState) -> None:
        self._state = state

    @property
    def current_branch(self) -> str:
        return self._state.value(StateField.CURRENT_BRANCH)

    @property
    def branches(self) -> List[str]:
        return list(self._state.value(StateField.BRANCHES))

    @property
    def all_branches(self) -> List[str]:
        return list(self._state.value(StateField.ALL_BRANCHES))

    def subscribe(self, field: StateField, observer: Observer, executor: Optional[Executor] = None) -> Subscription:
        """Register an observer for a field.

        Parameters
        ----------
        field : StateField
            Field to observe
        observer : Callable[[Any], None]
            Called with the current value right away and with every
            published value afterwards
        executor : Optional[Executor]
            Executor to deliver values on. Values are delivered on the
            publishing thread when None.

        Returns
        -------
        Subscription
            Handle whose ``cancel()`` stops delivery
        """
        return self._state.subscribe(field, observer, executor)
