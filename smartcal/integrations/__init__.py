"""
External service integrations for smartcal
"""
