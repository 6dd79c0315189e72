from photo_pairing.runners.local import LocalPairingPipeline, PairingResult

__all__ = ["LocalPairingPipeline", "PairingResult"]
