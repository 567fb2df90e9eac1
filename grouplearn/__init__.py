"""
Group learning request lifecycle engine.
"""
