"""Schemas for the chat endpoints (/ask, /chat) and health check."""

from typing import Any

from pydantic import BaseModel, Field, field_validator


def _number_to_str(value: Any) -> Any:
    """Ids and queries may arrive as JSON numbers; they are used as text."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class ChildProfile(BaseModel):
    """A child on the user's profile. Extra fields are kept but not used in the prompt."""

    model_config = {"extra": "allow"}

    name: str | None = None
    age: int | float | str | None = None
    gender: str | None = None
    birthday: str | None = None


class UserProfile(BaseModel):
    id: str | None = None
    name: str | None = None
    children: list[ChildProfile] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        return _number_to_str(v)


class ChatRequest(BaseModel):
    """Request body for POST /ask and POST /chat. `question` is accepted as an alias of `query`."""

    query: str | None = Field(None, description="User question.")
    question: str | None = Field(None, description="Alternative name for `query`.")
    userId: str | None = Field(None, description="User id when `user.id` is not given.")
    user: UserProfile | None = Field(None, description="Optional user profile used to personalise the answer.")

    @field_validator("query", "question", "userId", mode="before")
    @classmethod
    def _text_as_str(cls, v: Any) -> Any:
        return _number_to_str(v)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "query": "Which car seat fits a 2 year old?",
                    "user": {
                        "id": "u-42",
                        "name": "Dana",
                        "children": [{"name": "Noa", "age": 2, "gender": "female", "birthday": "2023-04-01"}],
                    },
                }
            ]
        }
    }


class ChatResponse(BaseModel):
    """Response for POST /ask and POST /chat; error responses share the shape and add `details`."""

    answer: str = Field(..., description="Assistant answer.")
    relatedProducts: list[dict[str, Any]] = Field(
        default_factory=list, description="Catalog rows for the SKUs the answer refers to."
    )
    details: str | None = Field(None, description="Error detail (500 only).")


class HealthResponse(BaseModel):
    status: str
    timestamp: str
