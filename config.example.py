# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real databases or .env files.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "STRATPLAN_APP_NAME": "App display name (default: stratplan).",
    "STRATPLAN_LOG_LEVEL": "Console logging level (default: INFO).",
    # Switches
    "STRATPLAN_SCHEDULER_ENABLED": "Run the due-date scheduler in the background (true/false).",
    "STRATPLAN_CONSOLE_ENABLED": "Start the operator console (true/false).",
    # Due-date scheduler
    "STRATPLAN_DUE_INTERVAL_MINUTES": "Minutes between due-date passes (default: 60).",
    "STRATPLAN_LEDGER_BACKEND": "memory (per process) or sqlite (persisted, shareable).",
    "STRATPLAN_LEDGER_CLAIM_TTL_SECONDS": "Seconds before an unconfirmed sqlite ledger claim may be retried (default: 600).",
    # Paths
    "STRATPLAN_DATA_DIR": "Local data directory (default: .local/stratplan).",
    "STRATPLAN_DB_PATH": "SQLite database for strategies/projects/actions/notifications.",
    "STRATPLAN_LEDGER_DB_PATH": "SQLite database for the sqlite ledger backend.",
}
