"""Devis PDF generation and signed PDF storage.

Key exports:
    render_demande_pdf()   — Render the Zalagh Plancher devis PDF for a demande
    generate_for_demande() — Look up a demande and write /pdfs/<id>.pdf
    export_links()         — Devis links for demandes in a date range
    store_signed_pdf()     — Decode and store an uploaded signed devis
"""
