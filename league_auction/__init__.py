"""
League auction service: live player auction for a multi-sport league.
"""
