"""notify/ -- One-time codes and outbound notifications (email/SMS via a Notifier).

Layer rule: notify/ imports only stdlib, third-party libraries, and core/.
"""
