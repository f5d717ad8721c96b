"""Clients and workflows for upstream APIs and watchlist management."""
