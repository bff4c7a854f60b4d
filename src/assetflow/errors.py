from __future__ import annotations

"""Exception hierarchy for the build orchestrator."""


class AssetflowError(Exception):
    """Base class for every error raised by assetflow."""


class ConfigError(AssetflowError):
    pass


class RegistryError(AssetflowError):
    """Raised while building the task registry; fatal at startup."""


class DuplicateTaskError(RegistryError):
    def __init__(self, name: str):
        super().__init__(f"Task already registered: {name}")
        self.name = name


class UnknownDependencyError(RegistryError):
    def __init__(self, name: str, missing: list[str]):
        super().__init__(
            f"Task {name} depends on unregistered task(s): {', '.join(missing)}"
        )
        self.name = name
        self.missing = missing


class UnknownTaskError(RegistryError):
    def __init__(self, name: str):
        super().__init__(f"Unknown task: {name}")
        self.name = name


class DependencyCycleError(RegistryError):
    def __init__(self, path: list[str]):
        super().__init__("Cycle detected: " + " -> ".join(path))
        self.path = path


class UnknownCollaboratorError(AssetflowError):
    def __init__(self, collaborator: str):
        super().__init__(f"No collaborator registered under {collaborator!r}")
        self.collaborator = collaborator


class ActionFailure(AssetflowError):
    """An external collaborator failed while running `task_name`."""

    def __init__(self, task_name: str, cause: BaseException):
        super().__init__(f"Task {task_name} failed: {cause}")
        self.task_name = task_name
        self.cause = cause


class WatchRuleFailure(AssetflowError):
    """A run triggered by a file change failed. The watch session keeps going."""

    def __init__(self, rule_name: str, failure: ActionFailure):
        super().__init__(f"Watch rule {rule_name} failed: {failure}")
        self.rule_name = rule_name
        self.failure = failure


class WatchModeError(AssetflowError):
    pass


class CollaboratorError(AssetflowError):
    """An external tool could not be started or exited non-zero."""
