NEGOTIATION_STATUSES = {
    "pending": {
        "description": "Opening offer, awaiting a response from the other party",
        "transitions": ["counter_offered", "accepted", "rejected", "expired"],
        "final": False,
    },
    "counter_offered": {
        "description": "A party has revised the proposed price",
        "transitions": ["counter_offered", "accepted", "rejected", "expired"],
        "final": False,
    },
    "accepted": {
        "description": "Price agreed, final_price is fixed",
        "transitions": [],
        "final": True,
    },
    "rejected": {
        "description": "Offer turned down by a participant",
        "transitions": [],
        "final": True,
    },
    "expired": {
        "description": "No response before expires_at",
        # Reserved edge; nothing in the service layer re-opens a negotiation.
        "transitions": ["pending"],
        "final": True,
    },
}

ACTIVE_STATUSES = tuple(
    name for name, meta in NEGOTIATION_STATUSES.items() if not meta["final"]
)
TERMINAL_STATUSES = tuple(
    name for name, meta in NEGOTIATION_STATUSES.items() if meta["final"]
)


def allowed_transitions(current_status):
    """Statuses reachable from ``current_status`` in one step."""
    return NEGOTIATION_STATUSES.get(current_status, {}).get("transitions", [])


def is_transition_allowed(current_status, new_status):
    return new_status in allowed_transitions(current_status)
