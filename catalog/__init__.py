# Product catalog and inventory ledger service
