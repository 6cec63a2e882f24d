"""
Centralized AWS client factory with lazy initialization.

Reduces cold start overhead by deferring boto3 client/resource creation
until first use. Only the composition root (shared.container) calls these;
components receive the handles they need through their constructors.
"""

_dynamodb = None
_secretsmanager = None
_lambda = None
_cognito_idp = None


def get_dynamodb():
    """Get DynamoDB resource, creating it lazily on first use."""
    global _dynamodb
    if _dynamodb is None:
        import boto3
        _dynamodb = boto3.resource("dynamodb")
    return _dynamodb


def get_secretsmanager():
    """Get Secrets Manager client, creating it lazily on first use."""
    global _secretsmanager
    if _secretsmanager is None:
        import boto3
        _secretsmanager = boto3.client("secretsmanager")
    return _secretsmanager


def get_lambda():
    """Get Lambda client, creating it lazily on first use."""
    global _lambda
    if _lambda is None:
        import boto3
        _lambda = boto3.client("lambda")
    return _lambda


def get_cognito_idp():
    """Get Cognito Identity Provider client, creating it lazily on first use."""
    global _cognito_idp
    if _cognito_idp is None:
        import boto3
        _cognito_idp = boto3.client("cognito-idp")
    return _cognito_idp


def reset_clients():
    """Reset all cached clients. Used in tests for clean state."""
    global _dynamodb, _secretsmanager, _lambda, _cognito_idp
    _dynamodb = None
    _secretsmanager = None
    _lambda = None
    _cognito_idp = None
