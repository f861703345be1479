"""Identity facade: registration/login over an identity provider and a local profile store.

To use the Flask app:
    from identity_facade.flask_app import create_app

To use the orchestrators directly:
    from identity_facade.core.registration import RegistrationOrchestrator
"""
# Note: flask_app is not imported here so the core can be used without Flask
