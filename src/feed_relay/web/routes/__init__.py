# ABOUTME: Web route modules.
# ABOUTME: Only the scheduling trigger API is exposed.
