"""Core services: Keycloak access, validation and the admin/catalogue services."""
