"""Sector notifications and the Gemini assistant.

Modules:
    notify_agent   — Sector validation + one notification per sector employee
    gemini_client  — Gemini REST calls (text + image parts), volume/cost parsing
    intents        — Keyword intent detection and date-range parsing
    assistant      — Plan vision analysis, public estimator chat, admin chat
                     (intents first, Gemini fallback)
"""
