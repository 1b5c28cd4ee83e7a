"""
Email package.

Modules:
- core: Base send_email function (SMTP)
- store: Order confirmation templates
"""
