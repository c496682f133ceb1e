"""
Helper package for the datalabs notebooks.

This package contains reusable utilities for:
- CAPM beta estimation: scraping DJIA / S&P 500 constituents, downloading
  adjusted close prices, computing returns and fitting one market-model
  regression per stock
- Cleaning the raw BBC iPlayer viewing extract: missing values, type
  conversion, duplicates, validity checks and outliers
- Rendering both analyses as self-contained HTML reports

All code is written in pure Python (NumPy/Pandas/SciPy ecosystem),
with a focus on modularity and clear documentation.
"""
