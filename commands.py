# Quick reference commands (run from repo root). These are comments only; copy/paste as needed.

# Install the package with test dependencies
# python -m pip install -e ".[test]"

# Run the full test suite
# python -m pytest

# Run focused test files
# python -m pytest tests/test_validation.py tests/test_config.py
# python -m pytest tests/test_security_headers.py tests/test_client_ip.py
# python -m pytest tests/test_rate_limit.py tests/test_cleanup.py
# python -m pytest tests/test_user_store.py tests/test_sessions.py tests/test_token_ledger.py
# python -m pytest tests/test_totp.py tests/test_password_hashing.py
# python -m pytest tests/test_auth_flow.py

# Start the API locally (with env vars loaded)
# python -m dotenv run -- python -m uvicorn app.api:app --reload

# Run the cleanup sweep as its own process (set CLEANUP_ENABLED=false on the API)
# python -m dotenv run -- python main.py

# Inspect rate-limit state (SQLite dev database)
# sqlite3 auth.db "SELECT key, count, expires_at FROM rate_limits ORDER BY expires_at DESC LIMIT 20;"

# Recent failed logins
# sqlite3 auth.db "SELECT email, ip_address, created_at FROM login_attempts WHERE success = 0 ORDER BY id DESC LIMIT 20;"
