"""Exports for transaction proposal domain"""

from .models import ProposalOutput, ProposalStage, TransactionProposal, parse_outputs

__all__ = [
    "ProposalOutput",
    "ProposalStage",
    "TransactionProposal",
    "parse_outputs",
]
