"""Achievement catalogue: 20 badges across check-ins, streaks, challenges, social and habits.

Each unlock also grants a selectable title ``achievement_{id}`` named by
``title_reward``.
"""

from __future__ import annotations

RARITY_COLORS: dict[str, str] = {
    "common": "#9CA3AF",
    "rare": "#3B82F6",
    "epic": "#8B5CF6",
    "legendary": "#F59E0B",
}

# trigger_type -> stat gathered by the achievement engine
TRIGGER_STATS: dict[str, str] = {
    "total_check_ins": "total_check_ins",
    "streak": "longest_streak",
    "deadline_complete": "deadline_complete",
    "elimination_win": "elimination_win",
    "groups_joined": "groups_joined",
    "groups_created": "groups_created",
    "on_time_check_ins": "on_time_check_ins",
    "late_night_check_ins": "late_night_check_ins",
}

ACHIEVEMENTS: list[dict] = [
    # Check-in milestones
    {
        "id": "first_steps",
        "name": "First Steps",
        "description": "Complete your first check-in",
        "icon": "footsteps-outline",
        "rarity": "common",
        "xp_reward": 25,
        "title_reward": "Beginner",
        "category": "check-ins",
        "trigger_type": "total_check_ins",
        "threshold": 1,
    },
    {
        "id": "getting_started",
        "name": "Getting Started",
        "description": "Complete 10 check-ins",
        "icon": "rocket-outline",
        "rarity": "common",
        "xp_reward": 50,
        "title_reward": "Go-Getter",
        "category": "check-ins",
        "trigger_type": "total_check_ins",
        "threshold": 10,
    },
    {
        "id": "halfway_there",
        "name": "Halfway There",
        "description": "Complete 50 check-ins",
        "icon": "flag-outline",
        "rarity": "rare",
        "xp_reward": 100,
        "title_reward": "Halfway Hero",
        "category": "check-ins",
        "trigger_type": "total_check_ins",
        "threshold": 50,
    },
    {
        "id": "century_mark",
        "name": "Century Mark",
        "description": "Complete 100 check-ins",
        "icon": "ribbon-outline",
        "rarity": "epic",
        "xp_reward": 200,
        "title_reward": "Centurion",
        "category": "check-ins",
        "trigger_type": "total_check_ins",
        "threshold": 100,
    },
    {
        "id": "checkin_machine",
        "name": "Check-in Machine",
        "description": "Complete 500 check-ins",
        "icon": "hardware-chip-outline",
        "rarity": "legendary",
        "xp_reward": 500,
        "title_reward": "Unstoppable",
        "category": "check-ins",
        "trigger_type": "total_check_ins",
        "threshold": 500,
    },
    # Streaks
    {
        "id": "streak_starter",
        "name": "Streak Starter",
        "description": "Reach a 3-day streak",
        "icon": "flame-outline",
        "rarity": "common",
        "xp_reward": 25,
        "title_reward": "Streak Starter",
        "category": "streaks",
        "trigger_type": "streak",
        "threshold": 3,
    },
    {
        "id": "week_warrior",
        "name": "Week Warrior",
        "description": "Reach a 7-day streak",
        "icon": "flame",
        "rarity": "rare",
        "xp_reward": 75,
        "title_reward": "Week Warrior",
        "category": "streaks",
        "trigger_type": "streak",
        "threshold": 7,
    },
    {
        "id": "fortnight_force",
        "name": "Fortnight Force",
        "description": "Reach a 14-day streak",
        "icon": "bonfire-outline",
        "rarity": "rare",
        "xp_reward": 100,
        "title_reward": "Fortnight Force",
        "category": "streaks",
        "trigger_type": "streak",
        "threshold": 14,
    },
    {
        "id": "month_master",
        "name": "Month Master",
        "description": "Reach a 30-day streak",
        "icon": "bonfire",
        "rarity": "epic",
        "xp_reward": 200,
        "title_reward": "Month Master",
        "category": "streaks",
        "trigger_type": "streak",
        "threshold": 30,
    },
    {
        "id": "century_streak",
        "name": "Century Streak",
        "description": "Reach a 100-day streak",
        "icon": "trophy",
        "rarity": "legendary",
        "xp_reward": 500,
        "title_reward": "Streak Legend",
        "category": "streaks",
        "trigger_type": "streak",
        "threshold": 100,
    },
    # Challenge types
    {
        "id": "deadline_crusher",
        "name": "Deadline Crusher",
        "description": "Complete a deadline challenge",
        "icon": "timer-outline",
        "rarity": "common",
        "xp_reward": 50,
        "title_reward": "Deadline Crusher",
        "category": "challenges",
        "trigger_type": "deadline_complete",
        "threshold": 1,
    },
    {
        "id": "deadline_pro",
        "name": "Deadline Pro",
        "description": "Complete 5 deadline challenges",
        "icon": "timer",
        "rarity": "rare",
        "xp_reward": 150,
        "title_reward": "Deadline Pro",
        "category": "challenges",
        "trigger_type": "deadline_complete",
        "threshold": 5,
    },
    {
        "id": "survivor",
        "name": "Survivor",
        "description": "Win an elimination challenge",
        "icon": "shield-checkmark-outline",
        "rarity": "rare",
        "xp_reward": 100,
        "title_reward": "Survivor",
        "category": "challenges",
        "trigger_type": "elimination_win",
        "threshold": 1,
    },
    {
        "id": "elimination_king",
        "name": "Elimination King",
        "description": "Win 3 elimination challenges",
        "icon": "shield-checkmark",
        "rarity": "epic",
        "xp_reward": 250,
        "title_reward": "Elimination King",
        "category": "challenges",
        "trigger_type": "elimination_win",
        "threshold": 3,
    },
    # Social
    {
        "id": "team_player",
        "name": "Team Player",
        "description": "Join your first group",
        "icon": "people-outline",
        "rarity": "common",
        "xp_reward": 25,
        "title_reward": "Team Player",
        "category": "social",
        "trigger_type": "groups_joined",
        "threshold": 1,
    },
    {
        "id": "social_butterfly",
        "name": "Social Butterfly",
        "description": "Join 5 groups",
        "icon": "people",
        "rarity": "rare",
        "xp_reward": 100,
        "title_reward": "Social Butterfly",
        "category": "social",
        "trigger_type": "groups_joined",
        "threshold": 5,
    },
    {
        "id": "squad_leader",
        "name": "Squad Leader",
        "description": "Create your first group",
        "icon": "megaphone-outline",
        "rarity": "common",
        "xp_reward": 50,
        "title_reward": "Squad Leader",
        "category": "social",
        "trigger_type": "groups_created",
        "threshold": 1,
    },
    # Habits
    {
        "id": "early_bird",
        "name": "Early Bird",
        "description": "Complete 10 on-time check-ins",
        "icon": "sunny-outline",
        "rarity": "common",
        "xp_reward": 50,
        "title_reward": "Early Bird",
        "category": "habits",
        "trigger_type": "on_time_check_ins",
        "threshold": 10,
    },
    {
        "id": "perfectionist",
        "name": "Perfectionist",
        "description": "Complete 50 on-time check-ins",
        "icon": "checkmark-done-circle",
        "rarity": "rare",
        "xp_reward": 150,
        "title_reward": "Perfectionist",
        "category": "habits",
        "trigger_type": "on_time_check_ins",
        "threshold": 50,
    },
    {
        "id": "night_owl",
        "name": "Night Owl",
        "description": "Check in after 10 PM 5 times",
        "icon": "moon-outline",
        "rarity": "common",
        "xp_reward": 50,
        "title_reward": "Night Owl",
        "category": "habits",
        "trigger_type": "late_night_check_ins",
        "threshold": 5,
    },
]

ACHIEVEMENTS_BY_ID: dict[str, dict] = {a["id"]: a for a in ACHIEVEMENTS}


def achievement_title_id(achievement_id: str) -> str:
    return f"achievement_{achievement_id}"


def is_condition_met(achievement: dict, stats: dict[str, int]) -> bool:
    """Whether the gathered ``stats`` satisfy an achievement's trigger."""
    stat = TRIGGER_STATS.get(achievement["trigger_type"])
    if stat is None:
        return False
    return stats.get(stat, 0) >= achievement["threshold"]
