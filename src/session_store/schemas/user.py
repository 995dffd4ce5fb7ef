from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserRecord(_CamelModel):
    user_name: str
    current_analysis_id: str | None = None
    created_at: str
    last_active_at: str


class SessionSummary(_CamelModel):
    analysis_id: str
    updated_at: str


class SessionsView(_CamelModel):
    """A user's session pointer plus every conversation they own, most recent first."""

    user_name: str
    current_analysis_id: str | None = None
    last_active_at: str
    conversations: list[SessionSummary] = Field(default_factory=list)


class LoginRequest(_CamelModel):
    # Optional here so a missing name is reported as invalid_input by the repository
    user_name: str | None = None
