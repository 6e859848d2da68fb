"""
Family Roles and Permissions Configuration
This config defines which actions each family role may perform.
Used by app.core.permissions for every family-scoped route.
"""

# Define actions grouped by the area of the app they guard
ACTIONS = {
    "calendar": {
        "actions": ["view_calendar", "edit_events", "delete_events", "complete_events"],
        "description": "Events, notes and event chat"
    },
    "family": {
        "actions": ["manage_members", "manage_family"],
        "description": "Calendar participants, family settings and roles"
    },
    "medications": {
        "actions": ["view_medications", "manage_medications", "log_medications"],
        "description": "Medication schedules and administration logs"
    },
    "messages": {
        "actions": ["view_messages", "post_messages"],
        "description": "Family-wide message board"
    },
    "caregivers": {
        "actions": ["view_pay_rates", "manage_pay_rates", "log_time", "view_time_entries"],
        "description": "Caregiver pay rates and time tracking"
    },
}

ALL_ACTIONS = [action for area in ACTIONS.values() for action in area["actions"]]

# Role definitions
ROLE_TYPES = {
    "owner": {
        "description": "Created the family calendar; full access including roles and pay",
        "permissions": ALL_ACTIONS,
    },
    "member": {
        "description": "Family member; manages the calendar but not pay or family settings",
        "permissions": [
            "view_calendar", "edit_events", "delete_events", "complete_events",
            "manage_members",
            "view_medications", "manage_medications", "log_medications",
            "view_messages", "post_messages",
        ],
    },
    "caregiver": {
        "description": "Hired or volunteer caregiver; follows the schedule and logs work",
        "permissions": [
            "view_calendar", "complete_events",
            "view_medications", "log_medications",
            "view_messages", "post_messages",
            "log_time", "view_time_entries",
        ],
    },
}

DEFAULT_ROLE = "member"


def get_role_permissions():
    """
    Returns the role -> action -> bool table.
    Every known action is present for every role so the table can be
    rendered as a matrix; unknown roles are simply absent.
    """
    table = {}
    for role, role_config in ROLE_TYPES.items():
        allowed = set(role_config["permissions"])
        table[role] = {action: action in allowed for action in ALL_ACTIONS}
    return table


def get_permission_matrix():
    """
    Returns a dictionary with all roles and their allowed actions
    Format: {
        "actions": ["view_calendar", ...],
        "roles": [
            {"name": "owner", "description": "...", "permissions": ["complete_events", ...]},
            ...
        ]
    }
    """
    roles = []
    for role, role_config in ROLE_TYPES.items():
        roles.append({
            "name": role,
            "description": role_config["description"],
            "permissions": sorted(role_config["permissions"]),
        })
    return {
        "actions": list(ALL_ACTIONS),
        "roles": roles,
    }


ROLE_PERMISSIONS = get_role_permissions()
