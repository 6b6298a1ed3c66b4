"""
Zalagh Plancher — demandes, devis and team messaging back office

Packages:
    api/        Flask blueprints (auth, demandes, notifications, messages, AI, files)
    forms/      Quote PDF generation and signed PDF storage
    agents/     Sector notifications and the Gemini assistant
    guide/      Interactive page guide (step table + state machine)
    core/       Configuration, paths, database, security, startup checks
"""
