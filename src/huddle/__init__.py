"""Huddle: follow graph, post interactions and real-time messaging backend."""
