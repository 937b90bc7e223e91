"""HTTP adapters exposing the sign-in services."""
