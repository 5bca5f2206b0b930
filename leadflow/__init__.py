"""Salesforce lead capture web app with OAuth 2.0 + PKCE sign-in."""

__version__ = "0.1.0"
