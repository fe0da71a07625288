"""Gemini access for AI-assisted summaries"""
