"""Domain layer for settleit.

Services are imported from their own modules (``settleit.domain.payout``
and so on) so that the database layer can import entities without
pulling the services in.
"""
