"""Internal utilities that do not belong to a specific part of stratum."""
