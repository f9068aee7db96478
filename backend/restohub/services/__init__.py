"""Order fulfillment services: branch scoping, inventory ledger, order lifecycle."""
