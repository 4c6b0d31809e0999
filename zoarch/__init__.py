"""
ZOARCH Specimen Catalog

Inventory backend for a zooarchaeology lab's specimen collection: record
store, spreadsheet import/export, summary charts and optional GitHub sync.
"""

__version__ = "0.1.0"
