"""
Trading Engine Components

Core execution components:
- PaperLedger: Simulated base/quote balances for paper fills
- OrderLog: Bounded audit trail of recent orders
- OrderExecutor: Risk checks and paper/live order routing
"""
