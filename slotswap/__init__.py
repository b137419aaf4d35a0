"""SlotSwap API - trade calendar slots one-to-one"""
