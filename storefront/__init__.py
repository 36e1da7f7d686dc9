"""Digital-goods storefront payment and fulfillment core"""
