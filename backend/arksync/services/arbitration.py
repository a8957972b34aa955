"""Arbitration Engine: exclusive first-past-the-post claims between two teams.

A claim reads the opponent's paired field and, if the opponent does not
already hold the winning value, writes the winning value for the requester
and the losing value for the opponent in one commit. Both team records are
locked for the whole read-modify-write, so two claims on the same pair are
decided one after the other and at most one team ever holds the win value.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from flask import current_app

from arksync.errors import InvalidRequest
from .locks import team_key


class ClaimOutcome(str, Enum):
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class ClaimContract:
    field_id: str
    win_value: str
    lose_value: str
    opponent_field_id: str

    @classmethod
    def from_dict(cls, data: dict) -> "ClaimContract":
        return cls(
            field_id=str(data['field_id']),
            win_value=str(data['win_value']),
            lose_value=str(data['lose_value']),
            opponent_field_id=str(data.get('opponent_field_id') or data['field_id']),
        )


@dataclass(frozen=True)
class ClaimResult:
    outcome: ClaimOutcome
    team_id: str
    opponent_team_id: str
    contract: ClaimContract

    @property
    def won(self) -> bool:
        return self.outcome is ClaimOutcome.WON


class ContractRegistry:
    """Declarative table of paired exclusive fields, keyed by the claimed field."""

    def __init__(self, contracts: Iterable[ClaimContract] = ()):
        self._by_field: Dict[str, ClaimContract] = {c.field_id: c for c in contracts}

    @classmethod
    def from_config(cls, entries) -> "ContractRegistry":
        return cls(ClaimContract.from_dict(e) for e in (entries or []))

    def get(self, field_id: str) -> Optional[ClaimContract]:
        return self._by_field.get(field_id)

    def resolve(self, field_id, win_value=None, lose_value=None, opponent_field_id=None) -> ClaimContract:
        if not field_id:
            raise InvalidRequest('fieldId is required')
        registered = self.get(field_id)
        if registered is not None:
            supplied = (win_value, lose_value, opponent_field_id)
            expected = (registered.win_value, registered.lose_value, registered.opponent_field_id)
            if any(s is not None and str(s) != e for s, e in zip(supplied, expected)):
                current_app.logger.warning(
                    f"[claim-contract] field={field_id} payload {supplied} overridden by registered {expected}"
                )
            return registered
        if win_value is None or lose_value is None:
            raise InvalidRequest(f"No claim contract for field {field_id!r}; winValue and loseValue are required")
        return ClaimContract(
            field_id=str(field_id),
            win_value=str(win_value),
            lose_value=str(lose_value),
            opponent_field_id=str(opponent_field_id or field_id),
        )


class ArbitrationEngine:

    def __init__(self, store, locks, broadcaster, contracts: ContractRegistry = None):
        self.store = store
        self.locks = locks
        self.broadcaster = broadcaster
        self.contracts = contracts or ContractRegistry()

    def try_claim(self, team_id: str, contract: ClaimContract, opponent_team_id: str) -> ClaimResult:
        if team_id == opponent_team_id:
            raise InvalidRequest('A team cannot claim against itself')

        with self.locks.hold(team_key(team_id), team_key(opponent_team_id)):
            team = self.store.get(team_id)
            opponent = self.store.get(opponent_team_id)

            held = opponent.score_fields.get(contract.opponent_field_id)
            if held == contract.win_value:
                current_app.logger.info(
                    f"[claim-lost] team={team_id} field={contract.field_id} "
                    f"opponent={opponent_team_id} already holds {contract.win_value!r}"
                )
                return ClaimResult(ClaimOutcome.LOST, team_id, opponent_team_id, contract)

            fields = team.score_fields
            fields[contract.field_id] = contract.win_value
            team.score_fields = fields
            opponent_fields = opponent.score_fields
            opponent_fields[contract.opponent_field_id] = contract.lose_value
            opponent.score_fields = opponent_fields
            self.store.upsert(team, opponent)

        current_app.logger.info(
            f"[claim-won] team={team_id} field={contract.field_id}={contract.win_value!r} "
            f"opponent={opponent_team_id} {contract.opponent_field_id}={contract.lose_value!r}"
        )
        self.broadcaster.broadcast_state()
        return ClaimResult(ClaimOutcome.WON, team_id, opponent_team_id, contract)

    def set_score_field(self, team_id: str, field_id: str, value) -> None:
        """Unconditional last-write-wins update of one score field."""
        if not field_id:
            raise InvalidRequest('fieldId is required')
        with self.locks.hold(team_key(team_id)):
            team = self.store.get(team_id)
            fields = team.score_fields
            fields[str(field_id)] = '' if value is None else str(value)
            team.score_fields = fields
            self.store.upsert(team)
        self.broadcaster.broadcast_state()

    def set_progress(self, team_id: str, index, checked) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise InvalidRequest(f"Progress index must be an integer, got {index!r}")
        with self.locks.hold(team_key(team_id)):
            team = self.store.get(team_id)
            flags = team.progress
            if not 0 <= index < len(flags):
                raise InvalidRequest(f"Progress index {index} out of range 0..{len(flags) - 1}")
            flags[index] = bool(checked)
            team.progress = flags
            self.store.upsert(team)
        self.broadcaster.broadcast_state()
