# Packet-loss estimation
from .packet_loss import calculate_packet_loss, packet_loss_for, raw_loss

__all__ = ["calculate_packet_loss", "packet_loss_for", "raw_loss"]
