"""Goal tracker package.

Goals/OKR hierarchy for the HR platform: progress calculation, status
resolution, roll-up through parent goals, with a thin Flask controller layer
over service/repository layers.
"""
