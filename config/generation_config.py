"""Generation-policy defaults and limits."""

from typing import Dict, Any

# Defaults applied to every workout plan that does not override them
GENERATION_DEFAULTS: Dict[str, Any] = {
    "advance_days": 14,
    "batch_size": 7,
    "preserve_user_modifications": True,
    "auto_generation_enabled": True,
}

# Accepted bounds for plan-level overrides
GENERATION_LIMITS: Dict[str, Dict[str, int]] = {
    "advance_days": {"min": 1, "max": 90},
    "batch_size": {"min": 1, "max": 14},
}
