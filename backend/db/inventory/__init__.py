"""
Inventory ledger tables.

Models:
- StockRecord (quantity per item per location, never negative, never deleted)
- Transaction (append-only movement log: ADD / REMOVE / MOVE)
- PutawayBatch (groups the ADD transactions of one putaway session)
"""
