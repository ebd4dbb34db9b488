# Role tag a user receives when they join a tenant team
SCOPE_TO_ROLE = {
    "organizer": "event_organizer",
    "venue": "venue_admin",
}

# Roles that may create a tenant entity of the given scope (superadmin always may)
CREATOR_ROLES = {
    "organizer": ("event_organizer",),
    "venue": ("venue_admin",),
}
