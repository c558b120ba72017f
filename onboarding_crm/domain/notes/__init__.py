"""Notes domain - staff notes on applications"""
