# Replay buffer defaults
REPLAY_ENABLED = True
REPLAY_CAPACITY = 10000
REPLAY_BATCH_SIZE = 32
REPLAY_FREQUENCY = 4          # environment steps between replay cycles

# Prioritization
PRIORITY_ALPHA = 0.6          # 0 = uniform, 1 = fully greedy by priority
PRIORITY_FLOOR = 1e-6         # keeps every priority strictly positive

# Importance-sampling correction
BETA_START = 0.4
BETA_END = 1.0
BETA_ANNEAL_STEPS = 100000    # replay cycles to reach BETA_END

# Value update used during replay
DISCOUNT = 0.99
LEARNING_RATE = 0.1

LOG_FILE = "replay_engine.log"
LOG_MAX_BYTES = 50 * 1024 * 1024
LOG_BACKUP_COUNT = 5
