"""Range accumulation trading bot backend"""
