"""
Tests for the auto insurance backend

Tests are organized by functionality:
- test_auth_*.py / test_token_service.py / test_password_hash.py: authentication
- test_policy_model.py / test_policy_service.py: policy term rules and quoting
- test_*_api.py: HTTP endpoints through FastAPI's TestClient
- test_manage_users_cli.py: operator CLI
"""
