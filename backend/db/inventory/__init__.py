"""
Venue blood inventory.

Models:
- VenueStock (quantity per blood type per venue, never negative)
- StockMovement (append-only deltas that update stock)

InventoryStore wraps both and publishes every committed change.
"""
