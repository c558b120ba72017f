"""Applications domain - Typeform applications under review"""
