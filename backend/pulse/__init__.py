"""Pulse: home-visit risk scoring and prioritization for barangay health workers."""
