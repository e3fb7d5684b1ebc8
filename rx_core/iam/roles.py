# rx_core/iam/roles.py
from __future__ import annotations

ROLE_PRESCRIBER = "prescriber"
ROLE_PATIENT = "patient"
ROLE_DISPENSER = "dispenser"
ROLE_OVERSEER = "overseer"

# Django auth Group name -> role
ROLE_GROUPS = {
    "PRESCRIBER": ROLE_PRESCRIBER,
    "PATIENT": ROLE_PATIENT,
    "DISPENSER": ROLE_DISPENSER,
    "OVERSEER": ROLE_OVERSEER,
}

GROUP_FOR_ROLE = {role: group for group, role in ROLE_GROUPS.items()}
