"""HTTP client, error types and request and response records for the Panel's remote API."""