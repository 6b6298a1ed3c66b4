"""Shared configuration, persistence and security."""
