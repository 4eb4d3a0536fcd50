"""Entity store, relationship validator, deal lifecycle and audit services."""
