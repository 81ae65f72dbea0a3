"""FRAGBOARD: ranking, tiers and team balancing for a friends league."""
