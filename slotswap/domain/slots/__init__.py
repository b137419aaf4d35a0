"""Slot domain - slot CRUD and the slot status machine"""
