"""HazardWatch hazard alert escalation engine."""
