"""ABC Intervention Engine - A/B/C behavioral intervention escalation service"""
