class LaundryError(Exception):
    """
    Base exception class for errors within the laundry board library.
    """


class UnknownMachineError(LaundryError, KeyError):
    """
    Raised when a requested machine id does not exist in the registry.
    """

    def __init__(self, machine_id: str) -> None:
        super().__init__(machine_id)
        self.machine_id = machine_id

    def __str__(self) -> str:
        return f"Unknown machine '{self.machine_id}'"


class IllegalTransitionError(LaundryError):
    """
    Raised when an action is incompatible with a machine's current status,
    e.g. marking a running machine broken or starting a broken one.
    """

    def __init__(self, machine_id: str, status, action) -> None:
        super().__init__(f"Cannot {action.name.lower()} machine '{machine_id}' while {status.value}")
        self.machine_id = machine_id
        self.status = status
        self.action = action


class InvariantViolationError(LaundryError):
    """
    Raised when a machine record breaks the running/remaining-minutes invariant.
    This is a programming defect, never a caller mistake.
    """
