"""
prereqs.py — Activity dependency and resource checks
=====================================================
FS (finish-to-start): every listed activity must be done first, otherwise
+1 week / +1 BP rework penalty.
SS (start-to-start): no penalty ever, only an informational warning. The SS
time bonus is decided separately from productivity (see `ss_bonus`).
"""

from __future__ import annotations

from dataclasses import dataclass

from sitesim.engine.models import Activity, FinishToStart, Player, StartToStart

FS_PENALTY_TIME = 1
FS_PENALTY_COST = 1
RESOURCE_PENALTY_TIME = 1
SS_BONUS_TIME = -1
SS_BONUS_MIN_PRODUCTIVITY = 1


@dataclass(frozen=True)
class DependencyCheck:
    warning: str = ""
    time_delta: int = 0
    cost_delta: int = 0


@dataclass(frozen=True)
class ResourceCheck:
    warning: str = ""
    time_delta: int = 0


def completed_ids(activities: list[Activity], activity_index: int) -> set[str]:
    return {a.id for a in activities[:activity_index]}


def evaluate_dependency(activity: Activity, completed: set[str]) -> DependencyCheck:
    dep = activity.dep

    if isinstance(dep, FinishToStart):
        missing = [x for x in dep.on if x not in completed]
        if missing:
            return DependencyCheck(
                warning=f"Prereq missing: {', '.join(missing)}",
                time_delta=FS_PENALTY_TIME,
                cost_delta=FS_PENALTY_COST,
            )
        return DependencyCheck()

    if isinstance(dep, StartToStart):
        pending = [x for x in dep.with_ if x not in completed]
        if pending:
            return DependencyCheck(warning=f"Runs alongside: {', '.join(pending)}")
        return DependencyCheck()

    return DependencyCheck()


def ss_bonus(activity: Activity, player: Player) -> int:
    if isinstance(activity.dep, StartToStart) and player.productivity >= SS_BONUS_MIN_PRODUCTIVITY:
        return SS_BONUS_TIME
    return 0


def resource_penalty(player: Player, activity: Activity) -> ResourceCheck:
    if player.workers < activity.req_workers or player.machines < activity.req_machines:
        return ResourceCheck(
            warning=(
                f"Resource short: need W{activity.req_workers}/M{activity.req_machines}, "
                f"you have W{player.workers}/M{player.machines}"
            ),
            time_delta=RESOURCE_PENALTY_TIME,
        )
    return ResourceCheck()


def preview_warnings(activity: Activity, player: Player, completed: set[str]) -> list[str]:
    """Warnings shown to the active player before they commit the turn."""
    warnings = []
    dep = evaluate_dependency(activity, completed)
    if dep.warning:
        warnings.append(dep.warning)
    res = resource_penalty(player, activity)
    if res.warning:
        warnings.append(res.warning)
    return warnings
