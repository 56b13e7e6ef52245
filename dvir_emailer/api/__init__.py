"""
Lambda Function URL handlers
"""
