"""
Team Service

Seeds a starting roster for new users and reads a user's team:
- 20 players (3 GK, 6 DEF, 6 MID, 5 FWD) with random valuations
- Starting budget of 5,000,000
"""

import logging
import random
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..constants import INITIAL_BUDGET, ROSTER_TEMPLATE, TransferStatus
from ..database.crud import DatabaseManager
from ..database.models import Player
from ..errors import NotFoundError, ValidationRejectedError
from ..schemas import Listing, PlayerInfo, TeamDetail

logger = logging.getLogger(__name__)

FIRST_NAMES = (
    "Alex", "Ben", "Carlos", "Dani", "Emil", "Felix", "Goran", "Hugo",
    "Ivan", "Jonas", "Kai", "Luca", "Mateo", "Nico", "Oscar", "Pablo",
    "Rafael", "Sami", "Theo", "Victor",
)
LAST_NAMES = (
    "Almeida", "Berg", "Costa", "Duarte", "Eriksen", "Fischer", "Garcia",
    "Hansen", "Ivanov", "Jensen", "Kovac", "Lopez", "Moreau", "Novak",
    "Okafor", "Peters", "Rossi", "Silva", "Torres", "Weber",
)


class TeamService:
    """Creates teams for new users and reports on existing ones."""

    def __init__(self, db_manager: DatabaseManager, rng: Optional[random.Random] = None):
        self.db = db_manager
        self._rng = rng or random.Random()

    def create_team_for_user(
        self,
        user_id: int,
        email: Optional[str] = None,
        team_name: Optional[str] = None,
    ) -> TeamDetail:
        """
        Create the user's team with a generated roster.

        Idempotent: a user that already has a team gets it back unchanged.
        Raises ValidationRejectedError when the email belongs to another user.
        """
        existing = self._find_team_detail(user_id)
        if existing is not None:
            logger.info(f"User {user_id} already has a team")
            return existing

        logger.info(f"Creating team for user {user_id}")
        try:
            with self.db.transaction() as session:
                self.db.get_or_create_user(session, user_id, email)
                team = self.db.create_team(
                    session,
                    user_id=user_id,
                    name=team_name or self._default_team_name(user_id, email),
                    budget=INITIAL_BUDGET,
                )
                players = self.generate_players(team.id)
                self.db.add_players(session, players)
                team_id = team.id
        except IntegrityError:
            existing = self._find_team_detail(user_id)
            if existing is not None:
                logger.info(f"Team for user {user_id} was created concurrently")
                return existing
            # The only other unique column on the way is users.email
            logger.info(f"User {user_id} sent an email that belongs to another user")
            raise ValidationRejectedError("Email already in use")

        logger.info(f"Created {len(players)} players for team {team_id}")
        return self.get_team_for_user(user_id)

    def get_team_for_user(self, user_id: int) -> TeamDetail:
        """Get the user's team with its roster and open listings."""
        detail = self._find_team_detail(user_id)
        if detail is None:
            raise NotFoundError("Team not found")
        return detail

    def get_team_id_for_user(self, user_id: int) -> int:
        """Resolve the caller's team id without loading the roster."""
        with self.db.transaction() as session:
            team = self.db.get_team_by_user(session, user_id)
            if team is None:
                raise NotFoundError("Team not found")
            return team.id

    def generate_players(self, team_id: int) -> List[Player]:
        """Build the starting roster for a team. Values are whole currency units."""
        players = []
        for position, count, min_value, max_value in ROSTER_TEMPLATE:
            for _ in range(count):
                players.append(Player(
                    team_id=team_id,
                    name=self._random_name(),
                    position=position,
                    value=Decimal(self._rng.randint(min_value, max_value)),
                ))
        return players

    def _find_team_detail(self, user_id: int) -> Optional[TeamDetail]:
        with self.db.transaction() as session:
            team = self.db.get_team_by_user(session, user_id)
            if team is None:
                return None
            players = self.db.get_team_players(session, team.id)
            listings = self.db.get_team_listings(session, team.id, status=TransferStatus.PENDING)
            return TeamDetail(
                id=team.id,
                user_id=team.user_id,
                name=team.name,
                budget=team.budget,
                players=[PlayerInfo.model_validate(p) for p in players],
                listings=[Listing.model_validate(t) for t in listings],
            )

    def _random_name(self) -> str:
        return f"{self._rng.choice(FIRST_NAMES)} {self._rng.choice(LAST_NAMES)}"

    @staticmethod
    def _default_team_name(user_id: int, email: Optional[str]) -> str:
        if email and "@" in email:
            return f"{email.split('@')[0]} FC"
        return f"Team {user_id}"
