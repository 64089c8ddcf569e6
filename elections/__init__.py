"""Election core: invariant guard, status engine, vote ledger, results and settings"""
