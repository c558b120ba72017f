"""Onboarding domain - persistence for the onboarding chat wizard"""
