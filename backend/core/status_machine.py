"""
Generic status machine for document lifecycles (purchases, sales, transfers).

A machine is a closed status enumeration (a Django ``TextChoices``), a
transition table mapping each status to the statuses it may move to, and a
linear "happy path" used for advance/revert navigation. The transition table
is the authority on what is legal; the flow is only a convenience for UIs.

Display data beyond the choice label (descriptions, colors, icons) lives in
plain dicts next to each enumeration and is only joined in by ``options()``.
"""
from .exceptions import UnknownStatus, InvalidStatusTransition


class StatusMachine:
    """Transition rules for one status enumeration"""

    def __init__(self, status_class, transitions, flow):
        self.status_class = status_class
        self.transitions = {
            status_class(source): frozenset(status_class(target) for target in targets)
            for source, targets in transitions.items()
        }
        self.flow = tuple(status_class(status) for status in flow)

        missing = set(status_class) - set(self.transitions)
        if missing:
            raise ValueError(f"No transition entry for {sorted(missing)} in {status_class.__name__}")

    def __repr__(self):
        return f"<StatusMachine {self.status_class.__name__}>"

    @property
    def initial(self):
        return self.flow[0]

    def coerce(self, value):
        """Return the enumeration member for ``value``; raise UnknownStatus if there is none"""
        if isinstance(value, self.status_class):
            return value
        try:
            return self.status_class(value)
        except ValueError:
            raise UnknownStatus(value, self.status_class) from None

    def can_transition(self, current, target) -> bool:
        current = self.coerce(current)
        target = self.coerce(target)
        return target in self.transitions[current]

    def allowed_targets(self, current):
        """Statuses reachable from ``current``, in declaration order"""
        allowed = self.transitions[self.coerce(current)]
        return [status for status in self.status_class if status in allowed]

    def is_terminal(self, current) -> bool:
        return not self.transitions[self.coerce(current)]

    def next(self, current):
        current = self.coerce(current)
        if current not in self.flow:
            return None
        position = self.flow.index(current)
        if position + 1 < len(self.flow):
            return self.flow[position + 1]
        return None

    def previous(self, current):
        current = self.coerce(current)
        if current not in self.flow:
            return None
        position = self.flow.index(current)
        if position > 0:
            return self.flow[position - 1]
        return None

    def advance_target(self, current):
        """Next status of the flow, or InvalidStatusTransition when there is none"""
        current = self.coerce(current)
        target = self.next(current)
        if target is None:
            raise InvalidStatusTransition(current, None, f"There is no status after '{current.label}'")
        return target

    def revert_target(self, current):
        """Previous status of the flow, or InvalidStatusTransition when there is none"""
        current = self.coerce(current)
        target = self.previous(current)
        if target is None:
            raise InvalidStatusTransition(current, None, f"There is no status before '{current.label}'")
        return target

    def ensure_transition(self, current, target):
        """Raise InvalidStatusTransition unless ``current -> target`` is legal"""
        current = self.coerce(current)
        target = self.coerce(target)
        if target not in self.transitions[current]:
            raise InvalidStatusTransition(current, target)
        return target

    def options(self, **tables):
        """
        Status options for select widgets.

        Each keyword is a display table keyed by status, e.g.
        ``options(description=DESCRIPTIONS, color=COLORS)``.
        """
        result = []
        for status in self.status_class:
            option = {'value': status.value, 'label': status.label}
            for key, table in tables.items():
                option[key] = table.get(status)
            option['allowed_transitions'] = [target.value for target in self.allowed_targets(status)]
            result.append(option)
        return result
