"""Domain services: sessions, tokens, security policy and the attendance ledger."""
