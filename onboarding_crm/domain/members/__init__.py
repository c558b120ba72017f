"""Members domain - business owners"""
