"""Final ranking once a room is FINISHED. Higher score is better."""

from __future__ import annotations

from sitesim.engine.errors import RejectedAction
from sitesim.engine.models import GameState, Player, PlayerScore, RoomStatus

SCORE_WEIGHTS = {
    "time": 0.4,
    "cost": 0.4,
    "productivity": 0.2,
}


def final_score(player: Player, min_time: int, min_cost: int) -> float:
    # min_time is 0 only when this player's time can be 0 as well
    time_ratio = min_time / player.time if player.time else 1.0
    return (
        SCORE_WEIGHTS["time"] * time_ratio
        + SCORE_WEIGHTS["cost"] * (min_cost / max(1, player.bp))
        + SCORE_WEIGHTS["productivity"] * player.productivity
    )


def calculate_scores(state: GameState) -> list[PlayerScore]:
    if state.status != RoomStatus.FINISHED:
        raise RejectedAction("Game not finished.")

    min_time = min(p.time for p in state.players)
    min_cost = min(p.bp for p in state.players)

    scores = [
        PlayerScore(
            player_id=p.id,
            nickname=p.nickname,
            time=p.time,
            bp=p.bp,
            productivity=p.productivity,
            score=round(final_score(p, min_time, min_cost), 4),
        )
        for p in state.players
    ]
    scores.sort(key=lambda s: s.score, reverse=True)
    return scores
