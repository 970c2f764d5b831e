"""
Catalog package: textbooks, their attachments and reader reviews.

``store`` holds the domain operations over the local key-value store,
``attachments`` encodes uploaded PDF/TXT files as inline data URLs and
``router`` exposes both to the local web front-end under /api/catalog.
"""
