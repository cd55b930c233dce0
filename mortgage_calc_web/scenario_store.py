"""Saved mortgage scenarios.

A scenario is a named set of engine inputs (the ``{loan, rateAdjustments,
lumpSumPayments}`` body accepted by the API) kept per anonymous user token.
Schedules are never stored: they are recomputed from the inputs whenever a
scenario is opened, so a saved scenario always reflects the current engine.

Any SQLAlchemy URL works; SQLite is used when none is configured.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker

DEFAULT_DATABASE_URL = "sqlite:///mortgage_scenarios.sqlite3"

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScenarioModel(Base):
    __tablename__ = "mortgage_scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    inputs_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


@dataclass(frozen=True)
class Scenario:
    """A saved scenario as handed to the web layer."""

    id: str
    name: str
    inputs: Dict[str, Any]
    created_at: datetime

    @classmethod
    def from_row(cls, row: ScenarioModel) -> "Scenario":
        return cls(
            id=row.id,
            name=row.name,
            inputs=json.loads(row.inputs_json),
            created_at=row.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "inputs": self.inputs,
            "created_at": self.created_at.isoformat(),
        }


class ScenarioStore:
    """Scenarios of each user token, oldest first, at most ``max_per_user`` kept.

    Calls made without a token are no-ops, so a client whose session was
    never established cannot read or write anybody's rows.
    """

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: str) -> List[Scenario]:
        if not user_token:
            return []
        query = (
            select(ScenarioModel)
            .where(ScenarioModel.user_token == user_token)
            .order_by(ScenarioModel.created_at.asc())
        )
        with self._sessions() as session:
            return [Scenario.from_row(row) for row in session.execute(query).scalars()]

    def get_scenario(self, user_token: str, scenario_id: str) -> Optional[Scenario]:
        with self._sessions() as session:
            row = self._owned_row(session, user_token, scenario_id)
            return None if row is None else Scenario.from_row(row)

    def add_scenario(self, user_token: str, scenario_id: str, name: str, inputs: dict) -> None:
        if not user_token:
            return
        with self._sessions() as session:
            session.add(
                ScenarioModel(
                    id=scenario_id,
                    user_token=user_token,
                    name=name,
                    inputs_json=json.dumps(inputs),
                )
            )
            session.commit()
        self._trim_user(user_token)

    def remove_scenario(self, user_token: str, scenario_id: str) -> bool:
        """Delete one of the user's scenarios; ``False`` when it is not theirs or missing."""
        with self._sessions() as session:
            row = self._owned_row(session, user_token, scenario_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def clear_scenarios(self, user_token: str) -> None:
        if not user_token:
            return
        with self._sessions() as session:
            session.execute(delete(ScenarioModel).where(ScenarioModel.user_token == user_token))
            session.commit()

    @staticmethod
    def _owned_row(session, user_token: str, scenario_id: str) -> Optional[ScenarioModel]:
        if not user_token:
            return None
        row = session.get(ScenarioModel, scenario_id)
        if row is None or row.user_token != user_token:
            return None
        return row

    def _trim_user(self, user_token: str) -> None:
        # Non-positive limits keep everything.
        if self._max_per_user <= 0:
            return
        stale = (
            select(ScenarioModel.id)
            .where(ScenarioModel.user_token == user_token)
            .order_by(ScenarioModel.created_at.desc())
            .offset(self._max_per_user)
        )
        with self._sessions() as session:
            stale_ids = list(session.execute(stale).scalars())
            if stale_ids:
                session.execute(delete(ScenarioModel).where(ScenarioModel.id.in_(stale_ids)))
                session.commit()


def create_store_from_env(url: Optional[str], max_per_user: int = 10) -> ScenarioStore:
    return ScenarioStore(url or DEFAULT_DATABASE_URL, max_per_user=max_per_user)
