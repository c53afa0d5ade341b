# Shared utilities for blueblue
