"""
Bar inventory.

Models:
- InventoryItem (global catalog entry, soft-deleted only)
- LocationStock (current_stock per item per bar, table `bar_inventory`)
- StockMovement (append-only audit of every stock change)
- BarToBarTransfer (stock in flight between two bars)
"""
