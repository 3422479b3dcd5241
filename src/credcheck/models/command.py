"""Command models: the SQL text, its parameters and how to run it."""

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from credcheck.db.backend import Connection, Parameters


class CommandKind(StrEnum):
    """Whether command text is a SQL statement or a stored routine name."""

    TEXT = "text"
    STORED_PROCEDURE = "stored_procedure"


class Command(BaseModel):
    """A single command, built fresh for each call and never reused."""

    model_config = ConfigDict(frozen=True)

    text: str
    parameters: dict[str, Any] | tuple[Any, ...] = Field(default_factory=tuple)
    kind: CommandKind = CommandKind.TEXT

    @classmethod
    def build(
        cls,
        text: str,
        parameters: Parameters | None = None,
        kind: CommandKind = CommandKind.TEXT,
    ) -> "Command":
        """Normalize ``parameters`` to an ordered dict or a tuple."""
        if parameters is None:
            params: dict[str, Any] | tuple[Any, ...] = ()
        elif isinstance(parameters, Mapping):
            params = dict(parameters)
        else:
            params = tuple(parameters)
        return cls(text=text, parameters=params, kind=kind)

    def render(self, conn: Connection) -> str:
        """Return the SQL to send over ``conn``."""
        if self.kind is CommandKind.STORED_PROCEDURE:
            return conn.render_procedure(self.text, self.parameters)
        return self.text
