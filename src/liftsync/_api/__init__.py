"""Endpoint helpers for the controller's request/response API."""
