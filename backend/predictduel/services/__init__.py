"""Service layer: duel lifecycle, settlement, leaderboard and notifications."""
