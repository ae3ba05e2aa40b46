"""Domain representations for transaction proposals."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from coinbox.core.exceptions import ValidationError


class ProposalStage(str, Enum):
    CREATED = "created"
    PUBLISHED = "published"
    SIGNED = "signed"
    BROADCAST = "broadcast"

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = [
    ProposalStage.CREATED,
    ProposalStage.PUBLISHED,
    ProposalStage.SIGNED,
    ProposalStage.BROADCAST,
]


@dataclass(frozen=True, slots=True)
class ProposalOutput:
    amount: int
    destination_address: str

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "ProposalOutput":
        if not isinstance(data, dict):
            raise ValidationError("Each output must be an object")
        amount = data.get("amount")
        address = (
            data.get("destination_address")
            or data.get("destinationAddress")
            or data.get("address")
        )
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(f"Output amount must be a positive integer, got {amount!r}")
        if not isinstance(address, str) or not address.strip():
            raise ValidationError("Output destination address is required")
        return cls(amount=amount, destination_address=address.strip())

    def to_payload(self) -> dict[str, Any]:
        return {"amount": self.amount, "toAddress": self.destination_address}


def parse_outputs(raw: Iterable[dict[str, Any]] | None) -> list[ProposalOutput]:
    outputs = [ProposalOutput.from_payload(item) for item in (raw or [])]
    if not outputs:
        raise ValidationError("At least one output is required")
    return outputs


@dataclass(slots=True)
class TransactionProposal:
    """Workflow-side state of a remote proposal. Never persisted."""

    outputs: list[ProposalOutput]
    message: Optional[str] = None
    proposal_id: Optional[str] = None
    stage: Optional[ProposalStage] = None
    memo: Optional[str] = None
    acknowledgements: dict[str, Any] = field(default_factory=dict)

    @property
    def total_amount(self) -> int:
        return sum(output.amount for output in self.outputs)

    def advance(self, stage: ProposalStage) -> None:
        """Move to ``stage``; stages only ever move one step forward."""
        current = self.stage.rank if self.stage is not None else -1
        if stage.rank != current + 1:
            raise ValueError(
                f"Proposal cannot move from {self.stage.value if self.stage else 'new'} to {stage.value}"
            )
        self.stage = stage
