"""Exceptions raised for environment problems, as opposed to policy violations."""


class FipsValidatorError(Exception):
    """Base class for errors that prevent a validation from completing."""


class BuildInfoError(FipsValidatorError):
    """Embedded Go build information was found but could not be decoded."""


class ExecutionError(FipsValidatorError):
    """An external command could not be started or was cancelled."""

    returncode = -1

    def __init__(self, command: str, message: str) -> None:
        super().__init__(f"{command}: {message}")
        self.command = command
