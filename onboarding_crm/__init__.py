"""Member onboarding CRM API"""
