"""HTTP routers: public pages, admin dashboard, JSON API."""
