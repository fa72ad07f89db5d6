"""Scheduled jobs run outside the API process."""
