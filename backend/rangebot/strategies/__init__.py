"""
Trading strategies
"""
