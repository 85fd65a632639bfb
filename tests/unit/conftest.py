"""
Unit test fixtures. Use fakes; no real DB or LLM.
"""
