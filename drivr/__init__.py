"""Drivr backend: driving sessions, segments and leaderboards."""
