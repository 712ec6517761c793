"""Garage API: owner-scoped car records behind cookie or bearer sessions."""
