"""
Repo Health routers

- analysis: JSON API under /api/analyze
- pages: submission form and polling dashboard
"""
