#!/usr/bin/env python3
"""Show DB record counts for the FORST tables."""
import sys
sys.path.insert(0, ".")

from forst import create_app
from forst.services.forst_queries import count_rows

app = create_app()
with app.app_context():
    counts = count_rows()
    for table, count in counts.items():
        print(f"    {table:.<30} {count}")
    print(f"    {'TOTAL':.<30} {sum(counts.values())}")
