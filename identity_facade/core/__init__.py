"""Core Business Logic Module

Registration and login orchestration across the identity provider and the
local profile store, independent of the HTTP layer.

Module Structure:
    - identity_provider/ : HTTP client for the identity provider
    - profile_store.py   : Local profile persistence (SQLAlchemy)
    - registration.py    : Create-user saga with compensating delete
    - login.py           : Login flow with best-effort profile enrichment
    - redaction.py       : Secret masking for log lines
    - validators.py      : Request payload validation
    - errors.py          : Typed outcomes mapped to HTTP statuses

Usage Pattern:
    from identity_facade.core.registration import RegistrationOrchestrator
    from identity_facade.core.login import LoginOrchestrator
"""
