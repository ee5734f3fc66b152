"""Flappy x402 game server.

Gates game sessions behind x402 micropayments and keeps the session/credit
ledger in memory for the lifetime of the process.
"""
