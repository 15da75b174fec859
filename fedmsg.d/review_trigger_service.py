config = {
    # Publish through the relay, the service has no passive endpoint
    "active": True,
    "endpoints": {
        "relay_outbound": [
            "tcp://fedmsg-relay:2001"
        ],
    },
    "relay_inbound": [
        "tcp://fedmsg-relay:2003"
    ],

    # Start of code signing configuration
    # 'sign_messages': True,
    # 'validate_signatures': True,
    # 'crypto_backend': 'x509',
    # 'crypto_validate_backends': ['x509'],
    # 'ssldir': '/opt/review_trigger_service/pki',
    # 'certnames': {
    #     'review_trigger_service.localhost': 'localhost'
    # }
    # End of code signing configuration
}
