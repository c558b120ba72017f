"""Team members domain"""
