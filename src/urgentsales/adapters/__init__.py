"""Platform adapters. core/ never imports from here."""
