"""
Bookings app.

Owns the Booking record and its append-only status history. Booking CRUD
(search, creation, guest-facing pages) lives outside this service; the
payment reconciliation core only moves ``status``/``payment_status``
through the transitions defined in ``bookings.states`` and appends
history rows.

Related apps:
    - payments: Payment, Refund and Commission rows referencing a booking
    - notifications: Guest emails after a committed transition
"""
