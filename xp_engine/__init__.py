"""Qualification cycle engine: tier ladder, cycle chaining and monthly ledgers."""
