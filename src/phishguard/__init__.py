"""phishguard: phishing verdict API with trusted-contact alerts."""
