"""
La Sexta — Loyalty, Ticketing & Events Backend for a Nightlife Venue
=====================================================================
Clients register, receive free-drink tickets, earn one loyalty point per
day and trade points for rewards through short-lived redeem codes.  Staff
validate tickets and codes at the bar, manage the event agenda (pushed
live to connected apps), sponsor benefits and the rewards catalog.

Package layout::

    lasexta/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Domain exception hierarchy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, sessions + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default admin / demo client accounts
    ├── engine/
    │   ├── codes.py       # Ticket, redeem and reset code generators
    │   ├── lifecycle.py   # Allowed status transitions
    │   ├── calendar.py    # Venue-local day boundaries, UTC helpers
    │   ├── sessions.py    # JWT session claims
    │   └── passwords.py   # argon2 hashing
    ├── services/
    │   ├── ticket_service.py       # Issue, send, validate tickets
    │   ├── points_service.py       # Daily points, redeem codes
    │   ├── auth_service.py         # Accounts, login, password reset
    │   ├── catalog_service.py      # Audited events / benefits / rewards
    │   ├── notification_service.py # In-app notification outbox
    │   ├── email_service.py        # SMTP delivery
    │   └── event_stream.py         # Server-Sent Events fan-out
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Client accounts + unified login
        └── routes/        # Client, public and admin REST endpoints
"""

__version__ = "0.1.0"
