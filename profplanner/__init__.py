"""
ProfPlanner: lesson scheduling, conflict checks and earnings for freelance instructors.
"""
