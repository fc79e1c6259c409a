# src/shared/error_codes.py
# Central mapping that aligns with the error contract.
# Keep keys stable: API clients rely on these.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 422,
        "message": "Validation failed for one or more fields."
    },
    "invalid_request": {
        "http": 400,
        "message": "Invalid request payload."
    },

    # ─── Authentication & Authorization ────────────────────────────────────
    "unauthorized": {
        "http": 401,
        "message": "Unauthorized. Please provide valid credentials."
    },
    "account_inactive": {
        "http": 401,
        "message": "Account inactive."
    },
    "forbidden": {
        "http": 403,
        "message": "You are not allowed to perform this action."
    },
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },

    # ─── Server ────────────────────────────────────────────────────────────
    "internal_error": {
        "http": 500,
        "message": "An unexpected error occurred."
    },
}
