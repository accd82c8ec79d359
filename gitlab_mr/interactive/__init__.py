"""Interactive terminal mode: prompts, paged selector, profile manager and shell"""
