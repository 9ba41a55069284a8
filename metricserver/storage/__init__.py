"""Metric storage: a thread-safe in-memory store and an SQLite database store."""