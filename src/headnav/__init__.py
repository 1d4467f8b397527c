"""headnav - Hands-free tiled window navigation from head-pose gestures."""

__version__ = "0.1.0"

from headnav.pose import Pose, PoseSample, InvalidPacket, decode_packet, encode_pose
from headnav.config import AppConfig, ClassifierConfig, DispatcherConfig, ConfigError, load_config
from headnav.history import HistoryRecord, PoseHistory
from headnav.kinematics import KinematicsEstimator
from headnav.classifier import GestureClassifier, Signal
from headnav.actuators import Actuator, ActuatorError, LogActuator, NiriMsgActuator, NiriSocketActuator
from headnav.dispatcher import Debouncer, SignalDispatcher, command_for
from headnav.receiver import PoseReceiver
from headnav.pipeline import HeadGesturePipeline, PipelineStopped, replay_signals
from headnav.recorder import PoseRecorder, PosePlayer
from headnav.metrics import MetricsCollector
