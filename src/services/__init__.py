"""
Service orchestration for the provisioning bridge
"""
