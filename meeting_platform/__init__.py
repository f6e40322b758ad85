"""Meeting / organization management platform - Backend.

Entities (companies) manage departments, sectors, positions, users and
meetings. This package holds the authentication core shared by every route:

- Two credential tables (administrators and entity users)
- Stateless JWT bearer tokens
- Entity sign-up, which creates the entity and its login account together

See DESIGN.md for how the pieces fit together.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
