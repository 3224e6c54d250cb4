"""docmanager.integrations: External collaborator adapters.

Outbound calls to blob storage go through an adapter in this package,
never via bare ``minio`` / ``requests`` calls in services or blueprints.

Current adapters:
  signed_url.SignedUrlIssuer: presigned read URLs for externally stored
  file content (inactive unless EXTERNAL_CONTENT_ENABLED)
"""
