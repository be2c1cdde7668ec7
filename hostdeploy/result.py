"""Stage results and the process exit code table."""

from dataclasses import dataclass, field
from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes. Each non-zero code names the stage that failed."""

    SUCCESS = 0
    GENERAL = 1
    EMPTY_TOKEN = 2
    EMPTY_USERNAME = 3
    CLONE_FAILED = 4
    WORKSPACE_NAVIGATION = 5
    NO_BUILD_DESCRIPTOR = 6
    SSH_UNREACHABLE = 7
    ENGINE_INSTALL = 8
    COMPOSE_INSTALL = 9
    PROXY_INSTALL = 10
    FILE_TRANSFER = 11
    COMPOSE_DEPLOY = 12
    IMAGE_BUILD = 13
    CONTAINER_RUN = 14
    CONTAINER_NOT_RUNNING = 15
    PROXY_CONFIG_WRITE = 16
    PROXY_CONFIG_TEST = 17
    PROXY_RELOAD = 18
    ENGINE_NOT_ACTIVE = 19
    CONTAINER_MISSING = 20
    PROXY_NOT_ACTIVE = 21


class FatalError(Exception):
    """Raised below the stage level; converted to a fatal StageResult."""

    def __init__(self, code: ExitCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class StageResult:
    """Outcome of one pipeline stage.

    A stage either succeeds (possibly with advisory warnings) or fails
    fatally with an exit code. Warnings never stop the pipeline.
    """

    code: ExitCode = ExitCode.SUCCESS
    message: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.code == ExitCode.SUCCESS

    @classmethod
    def success(cls, warnings: list[str] | None = None) -> "StageResult":
        return cls(warnings=list(warnings or []))

    @classmethod
    def fatal(cls, code: ExitCode, message: str) -> "StageResult":
        return cls(code=code, message=message)

    @classmethod
    def from_error(cls, err: FatalError) -> "StageResult":
        return cls(code=err.code, message=err.message)
