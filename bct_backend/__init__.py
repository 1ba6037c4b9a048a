"""BCT administrative backend.

To use the Flask app:
    from bct_backend.flask_app import create_app

To use Keycloak services:
    from bct_backend.core.keycloak import KeycloakClient, UserService, RoleService

To use the admin service:
    from bct_backend.core.admin_service import KeycloakAdminService
"""
# Note: flask_app is not imported here so scripts that only need the
# Keycloak client do not pull in Flask.
