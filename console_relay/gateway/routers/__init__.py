"""HTTP routers for the console relay gateway."""
