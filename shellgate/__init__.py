"""shellgate - policy-checked command execution gateway."""

__version__ = "0.1.0"
__logo__ = "🛡️"
