# Latency series reconciliation for the network monitoring dashboard
__version__ = "1.0.0"
