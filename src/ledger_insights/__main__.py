from ledger_insights.cli import run

run()
