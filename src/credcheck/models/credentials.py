"""Login credentials."""

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """A username and cleartext password, held for the duration of one check."""

    username: str
    password: str = Field(repr=False)
