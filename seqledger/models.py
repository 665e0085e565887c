"""Pydantic v2 models for ledger API wire payloads."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from seqledger.errors import APIError


# ---------------------------------------------------------------------------
# Discovery models
# ---------------------------------------------------------------------------


class HelloResponse(BaseModel):
    """Response from POST /hello -- where the team's ledgers are served."""

    team_name: str
    addr: str


# ---------------------------------------------------------------------------
# Error models
# ---------------------------------------------------------------------------


class ErrorBody(BaseModel):
    """Body of a non-2xx API response."""

    code: Optional[str] = None
    seq_code: Optional[str] = None
    message: Optional[str] = None
    detail: Optional[str] = None
    retriable: bool = False
    data: Optional[ErrorData] = None

    @field_validator("retriable", mode="before")
    @classmethod
    def _null_retriable(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def effective_code(self) -> str:
        # seq_code supersedes the legacy CHxxx code
        return self.seq_code or self.code or ""

    def to_error(self, status_code: int, request_id: Optional[str]) -> APIError:
        nested = []
        if self.data is not None:
            nested = [
                action.to_error(status_code, request_id)
                for action in self.data.actions
            ]
        return APIError(
            code=self.effective_code,
            message=self.message or "",
            status_code=status_code,
            retriable=self.retriable,
            detail=self.detail,
            request_id=request_id,
            nested=nested,
        )


class ErrorData(BaseModel):
    """Extra error data; ``actions`` lists per-action failures of a batch."""

    actions: list[ErrorBody] = Field(default_factory=list)

    model_config = {"extra": "allow"}


ErrorBody.model_rebuild()


# ---------------------------------------------------------------------------
# Transaction models
# ---------------------------------------------------------------------------


class Issue(BaseModel):
    """Issues new units of an asset to a destination account."""

    type: Literal["issue"] = "issue"
    amount: int
    asset_id: Optional[str] = None
    asset_alias: Optional[str] = None
    destination_account_id: Optional[str] = None
    destination_account_alias: Optional[str] = None
    reference_data: Optional[dict[str, Any]] = None


class Transfer(BaseModel):
    """Moves units from a source account or contract to a destination account."""

    type: Literal["transfer"] = "transfer"
    amount: int
    asset_id: Optional[str] = None
    asset_alias: Optional[str] = None
    source_account_id: Optional[str] = None
    source_account_alias: Optional[str] = None
    source_contract_id: Optional[str] = None
    destination_account_id: Optional[str] = None
    destination_account_alias: Optional[str] = None
    reference_data: Optional[dict[str, Any]] = None
    change_reference_data: Optional[dict[str, Any]] = None


class Retire(BaseModel):
    """Takes units of an asset out of circulation."""

    type: Literal["retire"] = "retire"
    amount: int
    asset_id: Optional[str] = None
    asset_alias: Optional[str] = None
    source_account_id: Optional[str] = None
    source_account_alias: Optional[str] = None
    source_contract_id: Optional[str] = None
    reference_data: Optional[dict[str, Any]] = None


TransactionAction = Annotated[
    Union[Issue, Transfer, Retire], Field(discriminator="type")
]


class TransactionRequest(BaseModel):
    """Request body for POST build-transaction."""

    actions: list[TransactionAction]
    reference_data: Optional[dict[str, Any]] = None
